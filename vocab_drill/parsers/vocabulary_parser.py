"""Parse vocabulary CSV files into VocabEntry objects.

Handles two header schemas:
  word,pinyin,meaning,example,example-pinyin,example-meaning   (current)
  Tiếng Trung;Phiên âm;Từ loại;Tiếng Việt;Ví dụ;Chú thích;Dịch  (legacy)

Rows sharing word + reading are merged and their meanings appended.
"""
from __future__ import annotations

import csv
import io
from pathlib import Path

from vocab_drill.models import VocabEntry, entry_id

# field -> accepted header names, first match wins
COLUMNS = {
    "word": ("word", "Tiếng Trung", "Tiếng\nTrung"),
    "reading": ("pinyin", "reading", "Phiên âm", "Phiên\nâm"),
    "word_class": ("type", "Từ loại"),
    "meaning": ("meaning", "Tiếng Việt", "Tiếng\nViệt"),
    "example": ("example", "Ví dụ"),
    "example_reading": ("example-pinyin", "example-reading", "Chú thích"),
    "example_meaning": ("example-meaning", "Dịch"),
}


def _cell(row: dict, name: str) -> str:
    for header in COLUMNS[name]:
        value = row.get(header)
        if value:
            return value.strip()
    return ""


def _split_meanings(text: str) -> list[str]:
    return [m.strip() for m in text.split(";") if m.strip()]


def parse_vocabulary_text(text: str, tier: int | None = None) -> list[VocabEntry]:
    text = text.lstrip("\ufeff")
    first_line = text.split("\n", 1)[0]
    delimiter = ";" if first_line.count(";") > first_line.count(",") else ","
    reader = csv.DictReader(io.StringIO(text), delimiter=delimiter)

    merged: dict[str, dict] = {}
    for row in reader:
        word = _cell(row, "word")
        reading = _cell(row, "reading")
        if not word or not reading:
            continue
        vid = entry_id(word, reading)
        meanings = _split_meanings(_cell(row, "meaning"))
        if vid in merged:
            existing = merged[vid]["meanings"]
            existing.extend(m for m in meanings if m not in existing)
            continue
        merged[vid] = {
            "word": word,
            "reading": reading,
            "meanings": meanings,
            "word_class": _cell(row, "word_class"),
            "example": _cell(row, "example"),
            "example_reading": _cell(row, "example_reading"),
            "example_meaning": _cell(row, "example_meaning"),
        }

    return [
        VocabEntry(id=vid, tier=tier, **{**fields, "meanings": tuple(fields["meanings"])})
        for vid, fields in merged.items()
        if fields["meanings"]
    ]


def parse_vocabulary_file(path: Path, tier: int | None = None) -> list[VocabEntry]:
    return parse_vocabulary_text(path.read_text(encoding="utf-8"), tier)
