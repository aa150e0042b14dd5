from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "db_path": "progress.db",
    "corpus_sources": [],
    "quiz_lengths": {
        "short": {"label": "Short", "count": 10},
        "medium": {"label": "Medium", "count": 20},
        "long": {"label": "Long", "count": 40},
        "maximum": {"label": "Maximum", "count": 60},
    },
    # Relative weights; need not sum to 100
    "tier_weights": {"1": 2, "2": 3, "3": 5},
    "question_type_weights": {
        "multiple-choice": 30,
        "matching": 20,
        "fill-blank": 20,
        "sentence-arrangement": 15,
        "sentence-completion": 15,
    },
    "option_labels": ["A", "B", "C", "D", "E", "F"],
    "mc_option_count": 4,
    "mc_distractor_count": 3,
    "mc_length_tolerance": 2,
    "mc_attempt_factor": 3,
    "mc_variants": [
        "word-to-reading",
        "reading-to-word",
        "meaning-to-word",
        "meaning-to-reading",
        "word-to-meaning",
        "reading-to-meaning",
    ],
    "matching_min_items": 3,
    "matching_max_items": 5,
    "fill_blank_option_count": 4,
    "fill_blank_distractor_count": 3,
    "fill_blank_length_tolerance": 2,
    "arrangement_min_words": 3,
    "arrangement_max_words": 8,
    "completion_min_word_length": 1,
}

QUESTION_TEXTS = {
    "word-to-reading": "Choose the correct reading for this word",
    "reading-to-word": "Choose the word with this reading",
    "meaning-to-word": "Choose the word with this meaning",
    "meaning-to-reading": "Choose the reading of the word with this meaning",
    "word-to-meaning": "Choose the meaning of this word",
    "reading-to-meaning": "Choose the meaning of the word with this reading",
}


def _default(key: str):
    value = DEFAULTS[key]
    return field(default_factory=lambda: json.loads(json.dumps(value)))


@dataclass
class Settings:
    db_path: str = DEFAULTS["db_path"]
    corpus_sources: list[dict] = _default("corpus_sources")
    quiz_lengths: dict[str, dict] = _default("quiz_lengths")
    tier_weights: dict[str, float] = _default("tier_weights")
    question_type_weights: dict[str, float] = _default("question_type_weights")
    option_labels: list[str] = _default("option_labels")
    mc_option_count: int = DEFAULTS["mc_option_count"]
    mc_distractor_count: int = DEFAULTS["mc_distractor_count"]
    mc_length_tolerance: int = DEFAULTS["mc_length_tolerance"]
    mc_attempt_factor: int = DEFAULTS["mc_attempt_factor"]
    mc_variants: list[str] = _default("mc_variants")
    matching_min_items: int = DEFAULTS["matching_min_items"]
    matching_max_items: int = DEFAULTS["matching_max_items"]
    fill_blank_option_count: int = DEFAULTS["fill_blank_option_count"]
    fill_blank_distractor_count: int = DEFAULTS["fill_blank_distractor_count"]
    fill_blank_length_tolerance: int = DEFAULTS["fill_blank_length_tolerance"]
    arrangement_min_words: int = DEFAULTS["arrangement_min_words"]
    arrangement_max_words: int = DEFAULTS["arrangement_max_words"]
    completion_min_word_length: int = DEFAULTS["completion_min_word_length"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def data_dir(self) -> Path:
        return self.project_root / "data"

    @property
    def db_full_path(self) -> Path:
        return self.project_root / self.db_path

    def question_count(self, length: str) -> int:
        if length not in self.quiz_lengths:
            raise ValueError(f"Unknown quiz length: {length}")
        return int(self.quiz_lengths[length]["count"])

    def resolved_corpus_sources(self) -> list[dict]:
        """Sources as ``{"path"|"url": ..., "tier": int | None}`` dicts.

        Without explicit sources, every ``data/*.csv`` is used and its tier
        is taken from the first digit in the file name (``hsk2.csv`` → 2).
        """
        if self.corpus_sources:
            resolved = []
            for src in self.corpus_sources:
                src = dict(src)
                if "path" in src:
                    src["path"] = str(self.project_root / src["path"])
                src.setdefault("tier", None)
                resolved.append(src)
            return resolved
        sources = []
        for path in sorted(self.data_dir.glob("*.csv")):
            m = re.search(r"(\d)", path.stem)
            sources.append({"path": str(path), "tier": int(m.group(1)) if m else None})
        return sources

    def to_dict(self) -> dict:
        return asdict(self)


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
