"""Heuristic word segmentation of example sentences.

The target script has no spaces between words, but the phonetic transcription
does.  Each transcription word is mapped onto as many characters as it has
vowel clusters (roughly one character per syllable).  This is an
approximation: it breaks on neutral-tone particles merged into a neighbouring
syllable, erhua, and transcriptions that disagree with the sentence.
"""
from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass

PUNCTUATION = set("。，！？、；：“”‘’（）《》【】…—·,.!?;:\"'()[]-")

_VOWEL_RUN = re.compile(r"[aeiouv]+")


@dataclass
class Segment:
    text: str
    reading: str
    start: int  # offset of the first character in the sentence
    end: int  # offset just past the last character / attached punctuation


def is_punctuation(ch: str) -> bool:
    return ch in PUNCTUATION


def strip_punctuation(text: str) -> str:
    return "".join(ch for ch in text if not is_punctuation(ch) and not ch.isspace())


def count_vowel_clusters(word: str) -> int:
    """Count maximal vowel runs after removing tone marks (``xiǎo`` → 1)."""
    decomposed = unicodedata.normalize("NFD", word.lower())
    bare = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return len(_VOWEL_RUN.findall(bare))


def _scan(sentence: str) -> tuple[list[tuple[str, int]], dict[int, list[tuple[str, int]]], list[tuple[str, int]]]:
    """Split *sentence* into (char, offset) pairs for script characters,
    punctuation keyed by the index of the character it follows, and any
    punctuation appearing before the first character."""
    chars: list[tuple[str, int]] = []
    trailing: dict[int, list[tuple[str, int]]] = {}
    leading: list[tuple[str, int]] = []
    for offset, ch in enumerate(sentence):
        if ch.isspace():
            continue
        if is_punctuation(ch):
            if chars:
                trailing.setdefault(len(chars) - 1, []).append((ch, offset))
            else:
                leading.append((ch, offset))
            continue
        chars.append((ch, offset))
    return chars, trailing, leading


def _build(
    indices: range,
    chars: list[tuple[str, int]],
    trailing: dict[int, list[tuple[str, int]]],
    reading: str,
) -> Segment:
    parts: list[str] = []
    start = chars[indices[0]][1]
    end = start
    for i in indices:
        ch, offset = chars[i]
        parts.append(ch)
        end = offset + 1
        for p, p_offset in trailing.get(i, ()):
            parts.append(p)
            end = p_offset + 1
    return Segment(text="".join(parts), reading=reading, start=start, end=end)


def _attach_leading(segments: list[Segment], leading: list[tuple[str, int]]) -> list[Segment]:
    if segments and leading:
        first = segments[0]
        prefix = "".join(p for p, _ in leading)
        segments[0] = Segment(prefix + first.text, first.reading, leading[0][1], first.end)
    return segments


def segment_sentence(sentence: str, reading: str) -> list[Segment]:
    chars, trailing, leading = _scan(sentence)
    segments: list[Segment] = []
    cursor = 0
    for word in reading.split():
        if cursor >= len(chars):
            break
        if not strip_punctuation(word):
            continue
        size = max(1, count_vowel_clusters(word))
        run = range(cursor, min(cursor + size, len(chars)))
        segments.append(_build(run, chars, trailing, strip_punctuation(word)))
        cursor = run.stop
    if cursor < len(chars):
        segments.append(_build(range(cursor, len(chars)), chars, trailing, ""))
    return _attach_leading(segments, leading)


def split_characters(sentence: str) -> list[Segment]:
    """Last resort: one token per character, punctuation glued to the
    preceding character."""
    chars, trailing, leading = _scan(sentence)
    segments = [_build(range(i, i + 1), chars, trailing, "") for i in range(len(chars))]
    return _attach_leading(segments, leading)
