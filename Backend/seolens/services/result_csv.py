"""
Result Export — writes bulk rows into the downloadable report CSV.
"""
import json
import logging
import os
from typing import Sequence

import polars as pl

from seolens.services.seo_models import BulkRow

logger = logging.getLogger(__name__)

RESULT_COLUMNS: dict[str, type[pl.DataType]] = {
    "URL": pl.Utf8,
    "SEO_Score": pl.Int64,
    "Title_Tag": pl.Utf8,
    "Title_Length": pl.Int64,
    "Meta_Description": pl.Utf8,
    "Meta_Description_Length": pl.Int64,
    "H1_Tag": pl.Utf8,
    "OG_Title": pl.Utf8,
    "OG_Description": pl.Utf8,
    "OG_Image": pl.Utf8,
    "Twitter_Title": pl.Utf8,
    "Twitter_Description": pl.Utf8,
    "Twitter_Card": pl.Utf8,
    "Robots_Tag": pl.Utf8,
    "Canonical_URL": pl.Utf8,
    "Analysis_Date": pl.Utf8,
    "Score_Breakdown_Summary": pl.Utf8,
    "Breakdown_Details": pl.Utf8,
    "Error_Message": pl.Utf8,
}


def breakdown_details(row: BulkRow) -> str:
    return json.dumps([item.model_dump() for item in row.score_breakdown], separators=(",", ":"))


def _to_record(row: BulkRow) -> tuple:
    return (
        row.url,
        row.seo_score,
        row.title_tag,
        row.title_length,
        row.meta_description,
        row.meta_description_length,
        row.h1_tag,
        row.og_title,
        row.og_description,
        row.og_image,
        row.twitter_title,
        row.twitter_description,
        row.twitter_card,
        row.robots_tag,
        row.canonical_url,
        row.analysis_date,
        row.breakdown_summary,
        breakdown_details(row),
        row.error_message or "",
    )


def write_results_csv(rows: Sequence[BulkRow], output_path: str) -> str:
    """
    Write rows (in the given order) under the fixed 19-column header.
    An empty sequence still produces the header line.
    """
    if rows:
        df = pl.DataFrame(
            [_to_record(row) for row in rows],
            schema=RESULT_COLUMNS,
            orient="row",
        )
    else:
        df = pl.DataFrame(schema=RESULT_COLUMNS)

    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    df.write_csv(output_path)
    logger.info(f"Wrote {df.height} result rows to {output_path}")
    return output_path
