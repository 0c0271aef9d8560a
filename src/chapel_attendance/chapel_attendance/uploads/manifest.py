"""Scan manifest parsing.

A manifest is CSV exported by the scanning devices: one row per scan with a
header naming the identifier column (``UniqueID``, ``matric`` ...) and an
optional ``Level`` column. Plain one-identifier-per-line files are accepted
too. A manifest that cannot be read at all is rejected as a whole.
"""
from __future__ import annotations

import csv
import hashlib
import io
from typing import Optional

from ..core.constants import IDENTIFIER_COLUMNS, LEVEL_COLUMNS
from ..core.exceptions import ManifestParseError
from .model import ScanEntry


def file_hash(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def _normalize_header(value: str) -> str:
    return "_".join(value.strip().lower().split())


def _find_column(header: list[str], candidates: tuple[str, ...]) -> Optional[int]:
    for name in candidates:
        if name in header:
            return header.index(name)
    return None


def _decode(content: bytes) -> str:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ManifestParseError("Manifest parsing failed: file is not UTF-8 text")
    if "\x00" in text:
        raise ManifestParseError("Manifest parsing failed: binary content")
    return text


def parse_manifest(content: bytes) -> list[ScanEntry]:
    text = _decode(content)
    try:
        rows = [row for row in csv.reader(io.StringIO(text)) if any(cell.strip() for cell in row)]
    except csv.Error as e:
        raise ManifestParseError(f"Manifest parsing failed: {e}")

    if not rows:
        raise ManifestParseError("Manifest parsing failed: file has no rows")

    raw_header = [cell.strip() for cell in rows[0]]
    header = [_normalize_header(cell) for cell in raw_header]
    id_idx = _find_column(header, IDENTIFIER_COLUMNS)

    if id_idx is None:
        if len(header) != 1:
            raise ManifestParseError(
                "Manifest parsing failed: no identifier column (expected one of "
                + ", ".join(IDENTIFIER_COLUMNS)
                + ")"
            )
        return _parse_single_column(rows)

    level_idx = _find_column(header, LEVEL_COLUMNS)
    entries: list[ScanEntry] = []
    for position, row in enumerate(rows[1:], start=1):
        if len(row) > len(raw_header):
            raise ManifestParseError(
                f"Manifest parsing failed: row {position} has {len(row)} fields, header has {len(raw_header)}"
            )
        padded = list(row) + [""] * (len(raw_header) - len(row))
        raw_data = dict(zip(raw_header, padded))
        level = padded[level_idx].strip() if level_idx is not None else ""
        entries.append(
            ScanEntry(
                position=position,
                unique_id=padded[id_idx].strip(),
                level=level or None,
                raw_data=raw_data,
            )
        )
    return entries


def _parse_single_column(rows: list[list[str]]) -> list[ScanEntry]:
    entries: list[ScanEntry] = []
    for position, row in enumerate(rows, start=1):
        if len(row) != 1:
            raise ManifestParseError(
                f"Manifest parsing failed: row {position} has {len(row)} fields, expected 1"
            )
        value = row[0].strip()
        entries.append(ScanEntry(position=position, unique_id=value, level=None, raw_data={"value": row[0]}))
    return entries
