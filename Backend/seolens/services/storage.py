import abc
import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO

from seolens.core.config import settings

logger = logging.getLogger(__name__)


class StorageProvider(abc.ABC):
    """
    Abstract base class for bulk-job file storage.
    Uploads and results are addressed by job id.
    """

    @abc.abstractmethod
    def save_upload(self, file_obj: BinaryIO, filename: str) -> str:
        """
        Save an incoming upload under a temporary name and return its path.
        The job id is not known until the file has been validated.
        """
        pass

    @abc.abstractmethod
    def assign_upload(self, temp_ref: str, job_id: str) -> str:
        """
        Move a validated upload to its per-job location.
        """
        pass

    @abc.abstractmethod
    def upload_path(self, job_id: str) -> str:
        pass

    @abc.abstractmethod
    def result_path(self, job_id: str) -> str:
        pass

    @abc.abstractmethod
    def delete(self, file_ref: str) -> bool:
        """
        Delete the file. Returns False if it did not exist.
        """
        pass


class LocalStorageProvider(StorageProvider):
    """
    Stores files on the local filesystem.
    Suitable for development or single-server deployment.
    """
    def __init__(self, upload_dir: str = settings.UPLOAD_DIR, results_dir: str = settings.RESULTS_DIR):
        self.upload_dir = Path(upload_dir)
        self.results_dir = Path(results_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.results_dir.mkdir(parents=True, exist_ok=True)

    def save_upload(self, file_obj: BinaryIO, filename: str) -> str:
        # Create a unique filename to prevent collisions
        ext = Path(filename).suffix or ".csv"
        target_path = self.upload_dir / f"incoming_{uuid.uuid4()}{ext}"

        with open(target_path, "wb") as buffer:
            shutil.copyfileobj(file_obj, buffer)

        return str(target_path)

    def assign_upload(self, temp_ref: str, job_id: str) -> str:
        target = self.upload_path(job_id)
        os.replace(temp_ref, target)
        return target

    def upload_path(self, job_id: str) -> str:
        return str(self.upload_dir / f"{job_id}.csv")

    def result_path(self, job_id: str) -> str:
        return str(self.results_dir / f"{job_id}_results.csv")

    def delete(self, file_ref: str) -> bool:
        try:
            os.remove(file_ref)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Failed to delete {file_ref}: {e}")
            return False
