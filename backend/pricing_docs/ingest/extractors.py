"""Text extractors for supported upload formats.

Each extractor turns one file into a single text blob. Extractors do not
normalise whitespace: chunking splits on whitespace anyway, and plain text is
expected to pass through unchanged.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Any, Iterable, Sequence

import fitz
import openpyxl
from docx import Document as DocxDocument

from pricing_docs.core.errors import ExtractionError, PricingDocsError, UnsupportedFileTypeError
from pricing_docs.core.logging import get_logger, log_context

logger = get_logger(__name__)

CELL_DELIMITER = " | "


class BaseExtractor:
    """Common extractor interface."""

    file_types: tuple[str, ...] = ()

    def can_extract(self, file_type: str) -> bool:
        return file_type in self.file_types

    def extract(self, path: Path) -> str:  # pragma: no cover - interface
        raise NotImplementedError


class PlainTextExtractor(BaseExtractor):
    file_types = ("txt", "text", "md", "markdown")

    def extract(self, path: Path) -> str:
        return path.read_bytes().decode("utf-8")


class DocxExtractor(BaseExtractor):
    file_types = ("docx",)

    def extract(self, path: Path) -> str:
        document = DocxDocument(str(path))
        lines = [paragraph.text for paragraph in document.paragraphs]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                if any(cells):
                    lines.append(CELL_DELIMITER.join(cells))
        return "\n".join(lines)


class SpreadsheetExtractor(BaseExtractor):
    """One header line per worksheet, then one line per non-empty row."""

    file_types = ("xlsx", "xlsm")

    def extract(self, path: Path) -> str:
        workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
        try:
            lines: list[str] = []
            for worksheet in workbook.worksheets:
                lines.append(f"=== Worksheet: {worksheet.title} ===")
                for row_number, values in enumerate(worksheet.iter_rows(values_only=True), start=1):
                    cells = _row_cells(values)
                    if cells:
                        lines.append(f"Row {row_number}: {CELL_DELIMITER.join(cells)}")
            return "\n".join(lines)
        finally:
            workbook.close()


class CsvExtractor(BaseExtractor):
    file_types = ("csv",)

    def extract(self, path: Path) -> str:
        content = path.read_bytes().decode("utf-8-sig")
        lines: list[str] = []
        data_rows = 0
        for record in csv.reader(io.StringIO(content)):
            cells = _row_cells(record)
            if not cells:
                continue
            if not lines:
                lines.append(f"Headers: {CELL_DELIMITER.join(cells)}")
            else:
                data_rows += 1
                lines.append(f"Row {data_rows}: {CELL_DELIMITER.join(cells)}")
        return "\n".join(lines)


class PdfExtractor(BaseExtractor):
    file_types = ("pdf",)

    def extract(self, path: Path) -> str:
        with fitz.open(str(path)) as document:
            pages = [page.get_text("text", sort=True) for page in document]
        return "\n\n".join(pages)


class ExtractorRegistry:
    """Registry that selects an extractor by declared file type."""

    # Formats accepted at upload that no extractor can read yet.
    declared_unsupported: tuple[str, ...] = ("doc", "xls")

    def __init__(self) -> None:
        self._extractors: list[BaseExtractor] = [
            PlainTextExtractor(),
            DocxExtractor(),
            SpreadsheetExtractor(),
            CsvExtractor(),
            PdfExtractor(),
        ]

    def for_type(self, file_type: str) -> BaseExtractor:
        normalized = normalize_file_type(file_type)
        if normalized not in self.declared_unsupported:
            for extractor in self._extractors:
                if extractor.can_extract(normalized):
                    return extractor
        raise UnsupportedFileTypeError(normalized)

    def extract(self, path: Path, file_type: str) -> str:
        """Return the readable text of ``path``; never retried by callers."""
        extractor = self.for_type(file_type)
        normalized = normalize_file_type(file_type)
        try:
            return extractor.extract(path)
        except PricingDocsError:
            raise
        except Exception as exc:
            logger.error(
                "Failed to extract %s from %s: %s",
                normalized,
                path.name,
                exc,
                extra=log_context(path=str(path), file_type=normalized),
            )
            raise ExtractionError(path, normalized, str(exc) or type(exc).__name__) from exc


def normalize_file_type(file_type: str) -> str:
    return (file_type or "").strip().lower().lstrip(".")


def _row_cells(values: Iterable[Any] | Sequence[Any]) -> list[str]:
    """Render a row as strings with trailing blanks trimmed; [] if empty."""
    cells = ["" if value is None else str(value).strip() for value in values]
    while cells and not cells[-1]:
        cells.pop()
    return cells


__all__ = [
    "BaseExtractor",
    "PlainTextExtractor",
    "DocxExtractor",
    "SpreadsheetExtractor",
    "CsvExtractor",
    "PdfExtractor",
    "ExtractorRegistry",
    "normalize_file_type",
    "CELL_DELIMITER",
]
