"""
Result CSV layout: header, row order, breakdown serialization, error rows.
"""
import json

import polars as pl

from seolens.services.bulk_processor import placeholder_row, to_bulk_row
from seolens.services.result_csv import RESULT_COLUMNS, write_results_csv
from seolens.services.seo_analyzer import analyze_html
from seolens.services.seo_models import NO_ISSUES_SUMMARY
from conftest import full_page_html

EXPECTED_HEADER = [
    "URL", "SEO_Score", "Title_Tag", "Title_Length", "Meta_Description",
    "Meta_Description_Length", "H1_Tag", "OG_Title", "OG_Description", "OG_Image",
    "Twitter_Title", "Twitter_Description", "Twitter_Card", "Robots_Tag",
    "Canonical_URL", "Analysis_Date", "Score_Breakdown_Summary",
    "Breakdown_Details", "Error_Message",
]


def _read(path) -> pl.DataFrame:
    return pl.read_csv(path, infer_schema_length=0)


def test_header_matches_export_layout():
    assert list(RESULT_COLUMNS) == EXPECTED_HEADER


def test_empty_rows_write_header_only(tmp_path):
    path = write_results_csv([], str(tmp_path / "out" / "empty.csv"))

    with open(path, encoding="utf-8") as fh:
        lines = fh.read().splitlines()
    assert lines == [",".join(EXPECTED_HEADER)]


def test_successful_row(tmp_path):
    analysis = analyze_html(full_page_html(), "https://example.com")
    path = write_results_csv([to_bulk_row(analysis)], str(tmp_path / "ok.csv"))

    df = _read(path)
    assert df.columns == EXPECTED_HEADER
    row = df.row(0, named=True)
    assert row["URL"] == "https://example.com"
    assert row["SEO_Score"] == "100"
    assert row["Title_Length"] == "45"
    assert row["H1_Tag"] == "Welcome"
    assert row["Canonical_URL"] == "https://example.com/"
    assert row["Score_Breakdown_Summary"] == NO_ISSUES_SUMMARY
    assert row["Breakdown_Details"] == "[]"
    assert row["Error_Message"] in ("", None)


def test_breakdown_details_round_trip(tmp_path):
    html = "<html><head><title>Short</title></head><body></body></html>"
    analysis = analyze_html(html, "https://example.com/short")
    bulk_row = to_bulk_row(analysis)
    path = write_results_csv([bulk_row], str(tmp_path / "issues.csv"))

    row = _read(path).row(0, named=True)
    details = json.loads(row["Breakdown_Details"])
    assert details == [item.model_dump() for item in analysis.breakdown]
    assert row["Score_Breakdown_Summary"].startswith("Title: Title too short (-10pts); ")
    # missing description is exported as empty text, not the placeholder
    assert row["Meta_Description"] in ("", None)
    assert row["Meta_Description_Length"] == "0"


def test_error_row_and_order(tmp_path):
    ok = to_bulk_row(analyze_html(full_page_html(), "https://a.com"))
    failed = placeholder_row("https://b.com", "URL analysis timeout")
    path = write_results_csv([failed, ok], str(tmp_path / "mixed.csv"))

    df = _read(path)
    assert df["URL"].to_list() == ["https://b.com", "https://a.com"]
    error_row = df.row(0, named=True)
    assert error_row["SEO_Score"] == "0"
    assert error_row["Error_Message"] == "URL analysis timeout"
    assert error_row["Breakdown_Details"] == "[]"
    assert error_row["Score_Breakdown_Summary"] in ("", None)


def test_values_with_commas_and_quotes_survive(tmp_path):
    html = full_page_html(title='Shoes, boots & "sneakers" for every season of the year')
    analysis = analyze_html(html, "https://shop.example.com")
    path = write_results_csv([to_bulk_row(analysis)], str(tmp_path / "quoted.csv"))

    row = _read(path).row(0, named=True)
    assert row["Title_Tag"] == 'Shoes, boots & "sneakers" for every season of the year'
