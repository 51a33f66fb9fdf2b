# services/export_service.py
from __future__ import annotations

import csv
import io
from typing import Any, Dict, Iterable

from services.weighting_types import CategoryResult, ComputeResult, Diagnostics

CATEGORY_CSV_COLUMNS = ["variable", "category", "target", "sampleShare", "weight", "capped"]


def export_filename(run_id: str) -> str:
    return f"{run_id}-category-weights.csv"


def category_row(row: CategoryResult) -> Dict[str, Any]:
    return {
        "variable": row.variable,
        "category": row.category,
        "target": row.target,
        "sampleShare": row.sample_share,
        "weight": row.weight,
        "capped": row.capped,
    }


def diagnostics_payload(diagnostics: Diagnostics) -> Dict[str, Any]:
    return {
        "iterations": diagnostics.iterations,
        "converged": diagnostics.converged,
        "capHits": [
            {
                "variable": hit.variable,
                "category": hit.category,
                "suggestedWeight": hit.suggested_weight,
                "cappedTo": hit.capped_to,
            }
            for hit in diagnostics.cap_hits
        ],
    }


def result_payload(result: ComputeResult) -> Dict[str, Any]:
    """JSON-ready shape shared by the API response, CLI output and snapshots."""
    return {
        "runId": result.run_id,
        "categoryTable": [category_row(r) for r in result.category_table],
        "diagnostics": diagnostics_payload(result.diagnostics),
        "respondentWeightsAvailable": result.respondent_weights_available,
    }


def render_category_csv(rows: Iterable[CategoryResult]) -> str:
    """
    Delimited export of the category table.

    Floats keep full precision (repr); booleans are written lowercase so
    the file reads the same as the JSON payload.
    """
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=CATEGORY_CSV_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        record = category_row(row)
        record["capped"] = "true" if row.capped else "false"
        writer.writerow(record)
    return buf.getvalue()
