"""Tolerant GTFS CSV parser: BOM cleanup, delimiter sniffing, column aliases."""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import TYPE_CHECKING, Any

from transit_pulse.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = get_logger(__name__)

BOM = "\ufeff"

# Candidate delimiters, in tie-break order
DELIMITERS = (",", ";", "\t")

SNIFF_LINES = 5


class StaticFileError(Exception):
    """Raised when a reference table cannot be read or parsed."""


def remove_bom(text: str) -> str:
    """Strip a leading byte-order mark."""
    return text[1:] if text.startswith(BOM) else text


def detect_delimiter(text: str) -> str:
    """Pick the most frequent of comma, semicolon and tab in the first five lines."""
    sample = "\n".join(text.splitlines()[:SNIFF_LINES])
    best = DELIMITERS[0]
    best_count = 0
    for delimiter in DELIMITERS:
        count = sample.count(delimiter)
        if count > best_count:
            best, best_count = delimiter, count
    return best


def parse_table(text: str, delimiter: str | None = None) -> list[dict[str, str]]:
    """Parse delimited text with a header row into trimmed row dicts.

    Blank lines are skipped. Missing trailing cells become empty strings.
    The delimiter is sniffed when not given.
    """
    text = remove_bom(text)
    delimiter = delimiter or detect_delimiter(text)
    reader = csv.reader(io.StringIO(text), delimiter=delimiter)

    header: list[str] | None = None
    rows: list[dict[str, str]] = []
    for record in reader:
        if not any(cell.strip() for cell in record):
            continue
        if header is None:
            header = [remove_bom(cell).strip() for cell in record]
            continue
        values = [cell.strip() for cell in record]
        values += [""] * (len(header) - len(values))
        rows.append(dict(zip(header, values)))
    return rows


def pick_field(row: Mapping[str, Any], candidates: Sequence[str]) -> str:
    """Return the first non-empty value among candidate column names."""
    for name in candidates:
        value = row.get(name)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            return value
    return ""


class GtfsTableReader:
    """Reads reference tables from disk and parses them with `parse_table`."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def read(self, path: Path) -> list[dict[str, str]]:
        """Read and parse one table.

        Raises:
            StaticFileError: If the file is missing, unreadable, or not text.
        """
        try:
            text = remove_bom(Path(path).read_text(encoding=self.encoding))
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Cannot read reference table {path}"
            raise StaticFileError(msg) from exc

        try:
            delimiter = detect_delimiter(text)
            rows = parse_table(text, delimiter)
        except csv.Error as exc:
            msg = f"Cannot parse reference table {path}"
            raise StaticFileError(msg) from exc

        logger.info(
            "Parsed reference table",
            path=str(path),
            delimiter=repr(delimiter),
            row_count=len(rows),
        )
        return rows
