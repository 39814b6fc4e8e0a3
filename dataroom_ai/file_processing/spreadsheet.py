"""
Spreadsheet text extraction.

Every data row becomes one record of the form::

    Sheet: {sheet} | {column}: {value}, {column}: {value}

so that a single row is the unit of embedding and retrieval. The first row
of each sheet is the header. Extraction never raises for a damaged file; a
placeholder record is returned instead so the upload can still be indexed.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from openpyxl import load_workbook

from dataroom_ai.config import settings
from dataroom_ai.logger import get_logger

logger = get_logger(__name__)

NO_TEXT_EXCEL_RECORD = "Sheet: Unknown | Content: Excel file with no extractable text"
FAILED_EXCEL_RECORD = "Sheet: Error | Content: Excel file could not be fully processed"
EMPTY_CSV_RECORD = "Sheet: CSV | Content: Empty CSV file"
NO_TEXT_CSV_RECORD = "Sheet: CSV | Content: CSV file with no extractable text"
FAILED_CSV_RECORD = "Sheet: CSV | Content: CSV file could not be fully processed"

PREVIEW_SAMPLE_ROWS = 5
PREVIEW_MAX_COLUMNS = 10


@dataclass
class SheetInfo:
    name: str
    row_count: int
    column_count: int
    columns: list[str] = field(default_factory=list)
    sample_row: dict[str, Any] | None = None


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _format_value(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def _header(row: Sequence[Any]) -> list[str]:
    return [
        _format_value(cell) if not _is_empty(cell) else f"Column{index + 1}"
        for index, cell in enumerate(row)
    ]


def _row_record(sheet_name: str, header: list[str], row: Sequence[Any]) -> str | None:
    pairs = [
        f"{header[i] if i < len(header) else f'Column{i + 1}'}: {_format_value(value)}"
        for i, value in enumerate(row)
        if not _is_empty(value)
    ]
    if not pairs:
        return None
    return f"Sheet: {sheet_name} | " + ", ".join(pairs)


def _rows_to_records(sheet_name: str, rows: Iterable[Sequence[Any]]) -> list[str]:
    records: list[str] = []
    header: list[str] | None = None
    for row in rows:
        if header is None:
            header = _header(row)
            continue
        record = _row_record(sheet_name, header, row)
        if record is not None:
            records.append(record)
    return records


def extract_text_from_excel(data: bytes, max_rows_per_sheet: int | None = None) -> list[str]:
    """
    Extract one record per non-empty row of every sheet in a workbook.

    Args:
        data: Raw .xlsx/.xlsm bytes
        max_rows_per_sheet: Rows read per sheet, header included

    Returns:
        Row records, or a single placeholder record when nothing was extracted
    """
    max_rows = max_rows_per_sheet or settings.spreadsheet_max_rows_per_sheet

    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except Exception as exc:
        logger.error("excel_load_failed", error=str(exc))
        return [FAILED_EXCEL_RECORD]

    texts: list[str] = []
    try:
        for sheet_name in workbook.sheetnames:
            try:
                rows = workbook[sheet_name].iter_rows(max_row=max_rows, values_only=True)
                records = _rows_to_records(sheet_name, rows)
            except Exception as exc:
                logger.error("excel_sheet_failed", sheet=sheet_name, error=str(exc))
                continue
            logger.debug("excel_sheet_extracted", sheet=sheet_name, rows=len(records))
            texts.extend(records)
    finally:
        workbook.close()

    logger.info("excel_extracted", sheets=len(workbook.sheetnames), records=len(texts))
    if not texts:
        logger.warning("excel_no_text_extracted")
        return [NO_TEXT_EXCEL_RECORD]
    return texts


def extract_text_from_csv(data: bytes) -> list[str]:
    """Extract one record per non-empty CSV row; the sheet name is always ``CSV``."""
    try:
        rows = list(csv.reader(io.StringIO(data.decode("utf-8-sig"))))
    except (UnicodeDecodeError, csv.Error) as exc:
        logger.error("csv_parse_failed", error=str(exc))
        return [FAILED_CSV_RECORD]

    if not rows:
        logger.warning("csv_empty")
        return [EMPTY_CSV_RECORD]

    texts = _rows_to_records("CSV", rows)
    logger.info("csv_extracted", records=len(texts))
    if not texts:
        return [NO_TEXT_CSV_RECORD]
    return texts


def get_excel_content_preview(data: bytes, max_sheets: int = 3) -> dict[str, SheetInfo]:
    """Sheet sizes, column names and a representative row, used for file descriptions."""
    try:
        workbook = load_workbook(io.BytesIO(data), data_only=True)
        preview: dict[str, SheetInfo] = {}
        for sheet_name in workbook.sheetnames[:max_sheets]:
            worksheet = workbook[sheet_name]
            rows = list(
                worksheet.iter_rows(max_row=PREVIEW_SAMPLE_ROWS + 1, values_only=True)
            )
            if not rows:
                continue

            header = _header(rows[0])
            sample_row: dict[str, Any] | None = None
            for row in rows[1:]:
                values = {
                    header[i]: v for i, v in enumerate(row) if i < len(header) and not _is_empty(v)
                }
                if len(values) >= 2:
                    sample_row = values
                    break

            preview[sheet_name] = SheetInfo(
                name=sheet_name,
                row_count=worksheet.max_row,
                column_count=worksheet.max_column,
                columns=header[:PREVIEW_MAX_COLUMNS],
                sample_row=sample_row,
            )
    except Exception as exc:
        logger.error("excel_preview_failed", error=str(exc))
        return {}
    return preview


def get_excel_sheet_names(data: bytes) -> list[str]:
    workbook = load_workbook(io.BytesIO(data), read_only=True)
    try:
        return list(workbook.sheetnames)
    finally:
        workbook.close()
