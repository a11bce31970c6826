"""
Parse uploaded .csv / .xlsx / .xls files into a raw 2-D grid of cells.

Row 0 of the returned grid is conventionally the header row. Cells are kept
as parsed (strings, numbers, datetimes); fully blank rows are dropped.
"""
import csv
import io
import logging
import math
from datetime import datetime, time
from pathlib import Path
from typing import Any, List

import pandas as pd

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".csv", ".xlsx", ".xls")

Grid = List[List[Any]]


class FileParseError(ValueError):
    """The uploaded file cannot be turned into a grid."""


class UnsupportedFileTypeError(FileParseError):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__("Format de fichier non supporté. Utilisez .xlsx, .xls ou .csv")


class EmptyFileError(FileParseError):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__("Le fichier est vide")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if value is pd.NaT:
        return True
    return isinstance(value, str) and not value.strip()


def _clean_cell(value: Any) -> Any:
    if _is_blank(value):
        return ""
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    return value


def _clean_rows(rows: List[List[Any]]) -> Grid:
    """Drop blank rows and trailing blank cells."""
    grid: Grid = []
    for row in rows:
        cells = [_clean_cell(value) for value in row]
        while cells and cells[-1] == "":
            cells.pop()
        if cells:
            grid.append(cells)
    return grid


def cell_to_text(value: Any) -> str:
    """
    Render a parsed cell as the string the validators work on.

    ``60.0`` becomes ``"60"``; Excel datetimes become ``YYYY-MM-DD`` (or
    ``HH:MM`` for pure time cells).
    """
    if _is_blank(value):
        return ""
    if isinstance(value, bool):
        return "oui" if value else "non"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        if value.date() == datetime(1899, 12, 30).date() or value.date() == datetime(1900, 1, 1).date():
            # Excel stores time-only cells on its epoch date
            return value.strftime("%H:%M")
        return value.date().isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M")
    return str(value).strip()


def _decode(file_content: bytes) -> str:
    for encoding in ("utf-8-sig", "cp1252", "latin-1"):
        try:
            return file_content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise FileParseError("Fichier illisible: encodage non reconnu")


def _sniff_delimiter(text: str) -> str:
    sample = "\n".join(text.splitlines()[:20])
    try:
        return csv.Sniffer().sniff(sample, delimiters=",;\t").delimiter
    except csv.Error:
        return ","


def parse_csv(file_content: bytes) -> Grid:
    """
    Parse a CSV file without assuming a header row.

    Every cell is read as text so postal codes and phone numbers keep their
    leading zeros and formatting.
    """
    text = _decode(file_content)
    if not text.strip():
        raise EmptyFileError("csv")

    delimiter = _sniff_delimiter(text)
    try:
        df = pd.read_csv(
            io.StringIO(text),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            sep=delimiter,
            engine="python",
        )
    except pd.errors.EmptyDataError:
        raise EmptyFileError("csv") from None
    except (pd.errors.ParserError, csv.Error) as exc:
        raise FileParseError(f"Erreur CSV: {exc}") from exc

    grid = _clean_rows(df.values.tolist())
    logger.info("Parsed CSV with %d rows (delimiter %r)", len(grid), delimiter)
    return grid


def parse_excel(file_content: bytes, sheet_name: Any = 0) -> Grid:
    """Parse the first (or named) worksheet of an Excel workbook."""
    if not file_content:
        raise EmptyFileError("excel")

    try:
        df = pd.read_excel(io.BytesIO(file_content), sheet_name=sheet_name, header=None, engine="openpyxl")
    except Exception as openpyxl_error:
        logger.debug("openpyxl could not read workbook (%s); retrying with default engine", openpyxl_error)
        try:
            df = pd.read_excel(io.BytesIO(file_content), sheet_name=sheet_name, header=None)
        except Exception as exc:
            raise FileParseError(f"Fichier illisible: {exc}") from exc

    grid = _clean_rows(df.astype(object).values.tolist())
    logger.info("Parsed Excel sheet with %d rows", len(grid))
    return grid


def parse_file(file_content: bytes, filename: str) -> Grid:
    """
    Parse an uploaded file into a grid.

    Raises:
        UnsupportedFileTypeError: extension is not .csv, .xlsx or .xls
        EmptyFileError: file has no non-blank rows
        FileParseError: file is corrupt or undecodable
    """
    extension = Path(filename or "").suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileTypeError(filename)

    if extension == ".csv":
        grid = parse_csv(file_content)
    else:
        grid = parse_excel(file_content)

    if not grid:
        raise EmptyFileError(filename)
    return grid
