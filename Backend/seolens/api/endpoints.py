from fastapi import APIRouter

from seolens.api.routes import analyze, jobs, status, upload

router = APIRouter()

router.include_router(upload.router, tags=["bulk"])
router.include_router(status.router, tags=["bulk"])
router.include_router(jobs.router, tags=["bulk"])
router.include_router(analyze.router, tags=["analyze"])
