"""
Record Export

Excel workbook for one calculation record (Summary / Inputs / Results
sheets) and a CSV of record list projections.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Tuple

from openpyxl import Workbook
from openpyxl.styles import Border, Font, PatternFill, Side

from .records.models import CalculationRecord

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(bold=True, color="FFFFFF")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


def flatten(value: Any, prefix: str = "") -> Iterator[Tuple[str, Any]]:
    """
    Walk a JSON document yielding (path, scalar) pairs.

    Paths use dots for keys and [i] for list positions, e.g.
    "buildingBreakdowns[0].totals.tcl".
    """
    if isinstance(value, dict):
        if not value and prefix:
            yield prefix, None
        for key, child in value.items():
            yield from flatten(child, f"{prefix}.{key}" if prefix else str(key))
    elif isinstance(value, list):
        if not value and prefix:
            yield prefix, None
        for i, child in enumerate(value):
            yield from flatten(child, f"{prefix}[{i}]")
    else:
        yield prefix, value


def _header_row(ws, headers: List[str]) -> None:
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER


def _path_sheet(ws, document: Any) -> None:
    _header_row(ws, ["Field", "Value"])
    for row_idx, (path, value) in enumerate(flatten(document), 2):
        ws.cell(row=row_idx, column=1, value=path)
        ws.cell(row=row_idx, column=2, value=value)
    ws.column_dimensions["A"].width = 50
    ws.column_dimensions["B"].width = 25


def export_record_workbook(record: Dict[str, Any], output_path: Path) -> Path:
    """
    Write one calculation record to an Excel workbook.

    Args:
        record: Full record dict (CalculationRecordManager.get)
        output_path: Target .xlsx path

    Returns:
        Path to created file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()

    ws = wb.active
    ws.title = "Summary"
    ws.cell(row=1, column=1, value="MEP CALCULATION").font = Font(bold=True, size=14)

    details = [
        ("Calculation:", record.get("calculation_name")),
        ("Type:", record.get("calculation_type")),
        ("Project ID:", record.get("project_id")),
        ("Status:", record.get("status")),
        ("Version:", record.get("version")),
        ("Calculated by:", record.get("calculated_by")),
        ("Verified by:", record.get("verified_by")),
        ("Updated:", str(record.get("updated_at") or "")),
    ]
    row = 3
    for label, value in details:
        ws.cell(row=row, column=1, value=label)
        ws.cell(row=row, column=2, value=value)
        row += 1

    row += 1
    ws.cell(row=row, column=1, value="Result").font = Font(bold=True)
    row += 1
    for key, value in (record.get("summary") or {}).items():
        ws.cell(row=row, column=1, value=key)
        ws.cell(row=row, column=2, value=value)
        row += 1

    ws.column_dimensions["A"].width = 25
    ws.column_dimensions["B"].width = 40

    _path_sheet(wb.create_sheet("Inputs"), record.get("input_parameters") or {})
    _path_sheet(wb.create_sheet("Results"), record.get("results") or {})

    wb.save(output_path)
    logger.info(f"Exported calculation {record.get('id')} to {output_path}")
    return output_path


def export_records_csv(records: Iterable[Dict[str, Any]], output_path: Path) -> Path:
    """
    Write record list projections to CSV.

    Summary dicts are serialised as JSON in a single column.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    fieldnames = list(CalculationRecord.LIST_COLUMNS)
    count = 0
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
        writer.writeheader()
        for record in records:
            row = dict(record)
            row["summary"] = json.dumps(row.get("summary") or {}, sort_keys=True)
            writer.writerow(row)
            count += 1

    logger.info(f"Exported {count} calculations to {output_path}")
    return output_path


__all__ = ["flatten", "export_record_workbook", "export_records_csv"]
