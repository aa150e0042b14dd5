"""Quiz session lifecycle: start → answer/navigate → finish."""
from __future__ import annotations

import enum
import logging
import random
import time
from collections.abc import Sequence
from typing import Protocol

from vocab_drill.composer import compose_quiz
from vocab_drill.config import Settings
from vocab_drill.db import history_from_result
from vocab_drill.models import (
    Answer,
    FrequencyRecord,
    Question,
    Quiz,
    QuizHistory,
    QuizResult,
    VocabEntry,
    WordStats,
)
from vocab_drill.progress import build_result
from vocab_drill.tracker import apply_answer, init_frequency

_log = logging.getLogger("vocab_drill.session")


class NoActiveQuizError(RuntimeError):
    pass


class ProgressStore(Protocol):
    def get_word_stats(self, word_id: str) -> WordStats | None: ...
    def bulk_put_word_stats(self, stats: list[WordStats]) -> None: ...
    def save_quiz_history(self, history: QuizHistory) -> int: ...


class SessionState(enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class QuizSession:
    def __init__(self, settings: Settings | None = None, rng: random.Random | None = None):
        self.settings = settings or Settings()
        self.rng = rng or random.Random()
        self._clear()

    def _clear(self) -> None:
        self.state = SessionState.NOT_STARTED
        self.quiz: Quiz | None = None
        self.current_index = 0
        self.answers: list[Answer] = []
        self.frequency: dict[str, FrequencyRecord] = {}
        self.is_submitted = False
        self.question_start_time = 0
        self.result: QuizResult | None = None

    # ── Transitions ───────────────────────────────────────────────────────

    def start(
        self,
        corpus: Sequence[VocabEntry],
        length: str,
        question_type: str | None = None,
    ) -> Quiz:
        quiz = compose_quiz(corpus, length, self.settings, question_type, rng=self.rng)
        self._clear()
        self.quiz = quiz
        self.frequency = init_frequency(quiz, corpus)
        self.state = SessionState.IN_PROGRESS
        self.question_start_time = _now_ms()
        _log.info("Started %s with %d questions", quiz.id, len(quiz.questions))
        return quiz

    def submit(self, answer: Answer) -> bool:
        """Record *answer*; returns False if the question was already answered
        or is not part of the active quiz."""
        if self.state is not SessionState.IN_PROGRESS or self.quiz is None:
            raise NoActiveQuizError("No active quiz")
        if self.is_answered(answer.question_id):
            return False
        question = self.find_question(answer.question_id)
        if question is None:
            return False
        self.frequency = apply_answer(self.frequency, question, answer)
        self.answers = [*self.answers, answer]
        self.is_submitted = True
        return True

    def next(self) -> None:
        if self.quiz and self.current_index < len(self.quiz.questions) - 1:
            self._move(self.current_index + 1)

    def previous(self) -> None:
        if self.quiz and self.current_index > 0:
            self._move(self.current_index - 1)

    def go_to(self, index: int) -> None:
        if self.quiz and 0 <= index < len(self.quiz.questions):
            self._move(index)

    def _move(self, index: int) -> None:
        self.current_index = index
        self.question_start_time = _now_ms()
        # Answered questions stay read-only when revisited
        self.is_submitted = self.is_answered(self.quiz.questions[index].id)

    async def finish(self, store: ProgressStore) -> QuizResult:
        if self.state is not SessionState.IN_PROGRESS or self.quiz is None:
            raise NoActiveQuizError("No active quiz")

        prior = {}
        for vid, record in self.frequency.items():
            if record.appearances > 0:
                stats = store.get_word_stats(vid)
                if stats is not None:
                    prior[vid] = stats

        result, updated = build_result(self.quiz, self.answers, self.frequency, prior, _now_ms())
        store.bulk_put_word_stats(updated)
        store.save_quiz_history(history_from_result(result))

        self.result = result
        self.state = SessionState.FINISHED
        _log.info("Finished %s: %d%%, progress %+.1f",
                  self.quiz.id, result.percentage_score, result.progress_score)
        return result

    def reset(self) -> None:
        self._clear()

    # ── Queries ───────────────────────────────────────────────────────────

    def current_question(self) -> Question | None:
        if self.quiz is None or not self.quiz.questions:
            return None
        return self.quiz.questions[self.current_index]

    def find_question(self, question_id: str) -> Question | None:
        if self.quiz is None:
            return None
        return next((q for q in self.quiz.questions if q.id == question_id), None)

    def get_answer(self, question_id: str) -> Answer | None:
        return next((a for a in self.answers if a.question_id == question_id), None)

    def is_answered(self, question_id: str) -> bool:
        return self.get_answer(question_id) is not None

    def progress(self) -> dict:
        if self.quiz is None or not self.quiz.questions:
            return {"current": 0, "total": 0, "percentage": 0.0}
        total = len(self.quiz.questions)
        current = self.current_index + 1
        return {"current": current, "total": total, "percentage": current / total * 100}


def _now_ms() -> int:
    return int(time.time() * 1000)
