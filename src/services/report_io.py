"""Read batch inputs from text/CSV files and write result reports as CSV/HTML."""

from __future__ import annotations

import csv
import html
from typing import TYPE_CHECKING, Any

import structlog

from src.core.result_aggregation import summarize

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

    from src.models.batch_result import BatchResult

logger = structlog.get_logger(__name__)

RESULT_FIELDS = ("index", "input", "status", "detail", "timestamp")


def read_text_items(path: Path) -> list[str]:
    """One value per line; blank lines and ``#`` comments are ignored."""
    values: list[str] = []
    with path.open("r", encoding="utf-8-sig") as handle:
        for line in handle:
            value = line.strip()
            if value and not value.startswith("#"):
                values.append(value)
    logger.info("read_text_items", path=str(path), count=len(values))
    return values


def read_csv_column(path: Path, column: str) -> list[str]:
    """Values of one CSV column, matched case-insensitively; blank cells are skipped."""
    with path.open("r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        headers = {name.strip().lower(): name for name in reader.fieldnames or []}
        key = headers.get(column.strip().lower())
        if key is None:
            msg = f"column {column!r} not found in {path.name}; available: {', '.join(headers.values())}"
            raise ValueError(msg)
        values = [row[key].strip() for row in reader if (row.get(key) or "").strip()]
    logger.info("read_csv_column", path=str(path), column=column, count=len(values))
    return values


def read_items(path: Path, column: str | None = None) -> list[str]:
    """Read a CSV column when ``column`` is given or the file is .csv, else plain lines."""
    if column is not None or path.suffix.lower() == ".csv":
        return read_csv_column(path, column or "UserPrincipalName")
    return read_text_items(path)


def _result_row(result: BatchResult) -> dict[str, str]:
    return {
        "index": str(result.index),
        "input": str(result.input),
        "status": result.status.value,
        "detail": result.detail,
        "timestamp": result.timestamp.isoformat(),
    }


def write_results_csv(results: Iterable[BatchResult], path: Path) -> Path:
    """Write one row per batch result."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=RESULT_FIELDS)
        writer.writeheader()
        for result in results:
            writer.writerow(_result_row(result))
    logger.info("wrote_csv_report", path=str(path))
    return path


def write_results_html(results: Sequence[BatchResult], path: Path, title: str) -> Path:
    """Write an HTML table of results headed by the summary counts."""
    summary = summarize(results)
    header = "".join(f"<th>{html.escape(name)}</th>" for name in RESULT_FIELDS)
    rows = []
    for result in results:
        row = _result_row(result)
        cells = "".join(f"<td>{html.escape(row[name])}</td>" for name in RESULT_FIELDS)
        rows.append(f'<tr class="{result.status.value}">{cells}</tr>')

    document = "\n".join(
        [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '<meta charset="utf-8">',
            f"<title>{html.escape(title)}</title>",
            "<style>",
            "table { border-collapse: collapse; font-family: sans-serif; }",
            "th, td { border: 1px solid #ccc; padding: 4px 8px; }",
            "tr.failed { background: #fbe3e3; }",
            "tr.skipped { background: #f5f5dc; }",
            "</style>",
            "</head>",
            "<body>",
            f"<h1>{html.escape(title)}</h1>",
            (
                f"<p>Processed: {summary.processed} | Successful: {summary.successful}"
                f" | Failed: {summary.failed} | Skipped: {summary.skipped}</p>"
            ),
            f"<table><thead><tr>{header}</tr></thead>",
            "<tbody>",
            *rows,
            "</tbody></table>",
            "</body>",
            "</html>",
        ]
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(document, encoding="utf-8")
    logger.info("wrote_html_report", path=str(path))
    return path


def write_records_csv(
    records: Iterable[dict[str, Any]],
    path: Path,
    fields: Sequence[str],
) -> int:
    """Export listing records; nested values are flattened to their string form.

    Returns the number of rows written. Records are consumed lazily, so a paged
    listing streams straight to disk.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=list(fields), extrasaction="ignore")
        writer.writeheader()
        for record in records:
            writer.writerow({name: _cell(record.get(name)) for name in fields})
            count += 1
    logger.info("wrote_records_csv", path=str(path), rows=count)
    return count


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "; ".join(_cell(v) for v in value)
    if isinstance(value, dict):
        return "; ".join(f"{k}={_cell(v)}" for k, v in value.items())
    return str(value)
