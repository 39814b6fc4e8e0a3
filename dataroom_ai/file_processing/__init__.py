"""Text extraction from uploaded spreadsheets."""

from dataroom_ai.file_processing.spreadsheet import (
    SheetInfo,
    extract_text_from_csv,
    extract_text_from_excel,
    get_excel_content_preview,
    get_excel_sheet_names,
)

__all__ = [
    "SheetInfo",
    "extract_text_from_csv",
    "extract_text_from_excel",
    "get_excel_content_preview",
    "get_excel_sheet_names",
]
