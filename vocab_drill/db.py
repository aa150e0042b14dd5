from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from vocab_drill.models import QuizHistory, VocabEntry, WordStats

SCHEMA = """
CREATE TABLE IF NOT EXISTS vocabulary (
    id TEXT PRIMARY KEY,
    word TEXT NOT NULL,
    reading TEXT NOT NULL,
    word_class TEXT,
    meanings_json TEXT NOT NULL,
    example TEXT,
    example_reading TEXT,
    example_meaning TEXT,
    tier INTEGER
);

CREATE TABLE IF NOT EXISTS word_stats (
    word_id TEXT PRIMARY KEY,
    word TEXT NOT NULL,
    reading TEXT NOT NULL,
    meanings_json TEXT NOT NULL DEFAULT '[]',
    total_appearances INTEGER DEFAULT 0,
    total_correct INTEGER DEFAULT 0,
    total_incorrect INTEGER DEFAULT 0,
    progress_score REAL DEFAULT 0,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS quiz_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    quiz_id TEXT NOT NULL,
    finished_at TEXT NOT NULL,
    length TEXT,
    score INTEGER,
    progress_score REAL,
    total_questions INTEGER,
    correct_count INTEGER,
    incorrect_count INTEGER,
    duration INTEGER,
    frequency_json TEXT DEFAULT '[]'
);
"""


def _row_to_entry(row: sqlite3.Row) -> VocabEntry:
    return VocabEntry(
        id=row["id"],
        word=row["word"],
        reading=row["reading"],
        meanings=tuple(json.loads(row["meanings_json"])),
        word_class=row["word_class"] or "",
        example=row["example"] or "",
        example_reading=row["example_reading"] or "",
        example_meaning=row["example_meaning"] or "",
        tier=row["tier"],
    )


def _row_to_stats(row: sqlite3.Row) -> WordStats:
    return WordStats(
        word_id=row["word_id"],
        word=row["word"],
        reading=row["reading"],
        meanings=json.loads(row["meanings_json"]),
        total_appearances=row["total_appearances"],
        total_correct=row["total_correct"],
        total_incorrect=row["total_incorrect"],
        progress_score=row["progress_score"],
    )


class Database:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    # ── Vocabulary ────────────────────────────────────────────────────────

    def import_entries(self, entries: list[VocabEntry]) -> int:
        count = 0
        for e in entries:
            self.conn.execute(
                "INSERT OR REPLACE INTO vocabulary "
                "(id, word, reading, word_class, meanings_json, example, "
                "example_reading, example_meaning, tier) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    e.id, e.word, e.reading, e.word_class,
                    json.dumps(list(e.meanings), ensure_ascii=False),
                    e.example, e.example_reading, e.example_meaning, e.tier,
                ),
            )
            count += 1
        self.conn.commit()
        return count

    def clear_vocabulary(self) -> None:
        self.conn.execute("DELETE FROM vocabulary")
        self.conn.commit()

    def get_vocabulary_count(self) -> int:
        row = self.conn.execute("SELECT COUNT(*) FROM vocabulary").fetchone()
        return row[0]

    def get_all_entries(self) -> list[VocabEntry]:
        rows = self.conn.execute("SELECT * FROM vocabulary ORDER BY rowid").fetchall()
        return [_row_to_entry(r) for r in rows]

    def get_tier_counts(self) -> dict[str, int]:
        rows = self.conn.execute(
            "SELECT COALESCE(tier, 0) AS tier, COUNT(*) AS n FROM vocabulary GROUP BY tier"
        ).fetchall()
        return {str(r["tier"]): r["n"] for r in rows}

    # ── Word stats ────────────────────────────────────────────────────────

    def get_word_stats(self, word_id: str) -> WordStats | None:
        row = self.conn.execute(
            "SELECT * FROM word_stats WHERE word_id = ?", (word_id,)
        ).fetchone()
        return _row_to_stats(row) if row else None

    def _put(self, stats: WordStats) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO word_stats "
            "(word_id, word, reading, meanings_json, total_appearances, "
            "total_correct, total_incorrect, progress_score, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                stats.word_id, stats.word, stats.reading,
                json.dumps(list(stats.meanings), ensure_ascii=False),
                stats.total_appearances, stats.total_correct,
                stats.total_incorrect, stats.progress_score,
                datetime.now(timezone.utc).isoformat(),
            ),
        )

    def put_word_stats(self, stats: WordStats) -> None:
        self._put(stats)
        self.conn.commit()

    def bulk_put_word_stats(self, stats: list[WordStats]) -> None:
        with self.conn:
            for s in stats:
                self._put(s)

    def get_all_word_stats(self) -> list[WordStats]:
        rows = self.conn.execute(
            "SELECT * FROM word_stats ORDER BY progress_score DESC, word"
        ).fetchall()
        return [_row_to_stats(r) for r in rows]

    # ── Quiz history ──────────────────────────────────────────────────────

    def save_quiz_history(self, history: QuizHistory) -> int:
        cur = self.conn.execute(
            "INSERT INTO quiz_history "
            "(quiz_id, finished_at, length, score, progress_score, total_questions, "
            "correct_count, incorrect_count, duration, frequency_json) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                history.quiz_id, history.finished_at, history.length,
                history.score, history.progress_score, history.total_questions,
                history.correct_count, history.incorrect_count, history.duration,
                json.dumps(history.frequency_data, ensure_ascii=False),
            ),
        )
        self.conn.commit()
        return cur.lastrowid

    def get_quiz_history(self, limit: int = 20) -> list[QuizHistory]:
        rows = self.conn.execute(
            "SELECT * FROM quiz_history ORDER BY finished_at DESC, id DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [
            QuizHistory(
                id=r["id"],
                quiz_id=r["quiz_id"],
                finished_at=r["finished_at"],
                length=r["length"],
                score=r["score"],
                progress_score=r["progress_score"],
                total_questions=r["total_questions"],
                correct_count=r["correct_count"],
                incorrect_count=r["incorrect_count"],
                duration=r["duration"],
                frequency_data=json.loads(r["frequency_json"] or "[]"),
            )
            for r in rows
        ]

    def get_stats(self) -> dict:
        vocab = self.get_vocabulary_count()
        words = self.conn.execute(
            "SELECT COUNT(*) AS n, "
            "COALESCE(SUM(total_correct), 0) AS correct, "
            "COALESCE(SUM(total_appearances), 0) AS total, "
            "COALESCE(AVG(progress_score), 0) AS avg_score "
            "FROM word_stats"
        ).fetchone()
        quizzes = self.conn.execute(
            "SELECT COUNT(*) AS n, COALESCE(AVG(score), 0) AS avg_score "
            "FROM quiz_history"
        ).fetchone()

        total_answered = words["total"]
        total_correct = words["correct"]
        return {
            "total_words": vocab,
            "words_practiced": words["n"],
            "words_new": max(0, vocab - words["n"]),
            "total_quizzes": quizzes["n"],
            "average_quiz_score": round(quizzes["avg_score"], 1),
            "average_progress_score": round(words["avg_score"], 1),
            "total_answers": total_answered,
            "total_correct": total_correct,
            "accuracy": (
                round(total_correct / total_answered * 100, 1)
                if total_answered > 0
                else 0
            ),
        }


def history_from_result(result) -> QuizHistory:
    """Summary row persisted for a finished quiz."""
    return QuizHistory(
        quiz_id=result.quiz_id,
        finished_at=result.finished_at,
        length=result.length,
        score=result.percentage_score,
        progress_score=result.progress_score,
        total_questions=result.total_questions,
        correct_count=result.correct_count,
        incorrect_count=result.incorrect_count,
        duration=result.total_time,
        frequency_data=[asdict(r) for r in result.frequency_data],
    )
