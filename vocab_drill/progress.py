"""Decaying-weight progress score and end-of-quiz aggregation."""
from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import datetime, timezone

from vocab_drill.models import (
    QUESTION_TYPES,
    Answer,
    FrequencyRecord,
    MatchingAnswer,
    MatchingQuestion,
    Quiz,
    QuizResult,
    WordStats,
)

BASE_POINTS = 10
MAX_APPEARANCES = 50
MIN_WEIGHT = 0.2
SCORE_LIMIT = 100.0


def round1(value: float) -> float:
    """Round half away from zero to one decimal."""
    return math.copysign(math.floor(abs(value) * 10 + 0.5) / 10, value)


def clamp_score(value: float) -> float:
    return max(-SCORE_LIMIT, min(SCORE_LIMIT, value))


def progress_points(
    appearances: int,
    is_correct: bool,
    max_appearances: int = MAX_APPEARANCES,
) -> float:
    """Points for one answer on a word seen *appearances* times before.

    A brand-new word is worth ±10; the weight decays linearly and floors at
    ±2 from *max_appearances* on.
    """
    weight = max(MIN_WEIGHT, 1 - appearances / max_appearances)
    points = round1(BASE_POINTS * weight)
    return points if is_correct else -points


def answer_deltas(prior_appearances: int, correct: int, incorrect: int) -> list[float]:
    """Per-answer points, correct answers first, each one seeing the word as
    one appearance older than the last."""
    deltas = [progress_points(prior_appearances + i, True) for i in range(correct)]
    deltas += [
        progress_points(prior_appearances + correct + i, False)
        for i in range(incorrect)
    ]
    return deltas


def word_delta(prior_appearances: int, correct: int, incorrect: int) -> float:
    return sum(answer_deltas(prior_appearances, correct, incorrect))


def apply_session(stats: WordStats, record: FrequencyRecord) -> WordStats:
    score = stats.progress_score
    for delta in answer_deltas(stats.total_appearances, record.correct_answers, record.incorrect_answers):
        score = clamp_score(round1(score + delta))
    return replace(
        stats,
        total_appearances=stats.total_appearances + record.appearances,
        total_correct=stats.total_correct + record.correct_answers,
        total_incorrect=stats.total_incorrect + record.incorrect_answers,
        progress_score=score,
    )


def empty_stats(record: FrequencyRecord) -> WordStats:
    return WordStats(
        word_id=record.word_id,
        word=record.word,
        reading=record.reading,
        meanings=list(record.meanings),
    )


def total_questions(quiz: Quiz) -> int:
    """Matching questions count once per item."""
    return sum(len(q.items) if isinstance(q, MatchingQuestion) else 1 for q in quiz.questions)


def correct_count(answers: Sequence[Answer]) -> int:
    count = 0
    for answer in answers:
        if isinstance(answer, MatchingAnswer):
            count += answer.correct_count
        elif answer.is_correct:
            count += 1
    return count


def average_times(answers: Sequence[Answer]) -> dict[str, float]:
    totals = {t: [0, 0] for t in QUESTION_TYPES}
    for answer in answers:
        bucket = totals[answer.type]
        bucket[0] += answer.time_spent
        bucket[1] += 1
    return {t: (s / n if n else 0.0) for t, (s, n) in totals.items()}


def build_result(
    quiz: Quiz,
    answers: Sequence[Answer],
    frequency: Mapping[str, FrequencyRecord],
    prior_stats: Mapping[str, WordStats],
    end_time: int,
) -> tuple[QuizResult, list[WordStats]]:
    """Fold a finished session into a result and updated word stats.

    *prior_stats* maps word ids to their persisted stats; unseen words start
    from zero appearances.
    """
    session_score = 0.0
    records: list[FrequencyRecord] = []
    updated: list[WordStats] = []
    for vid, record in frequency.items():
        if record.appearances <= 0:
            continue
        stats = prior_stats.get(vid) or empty_stats(record)
        delta = word_delta(stats.total_appearances, record.correct_answers, record.incorrect_answers)
        session_score += delta
        records.append(replace(record, progress_points=round1(delta)))
        updated.append(apply_session(stats, record))

    records.sort(key=lambda r: (-r.progress_points, -r.incorrect_answers))

    total = total_questions(quiz)
    correct = min(correct_count(answers), total)
    result = QuizResult(
        quiz_id=quiz.id,
        length=quiz.length,
        finished_at=datetime.now(timezone.utc).isoformat(),
        total_questions=total,
        correct_count=correct,
        incorrect_count=total - correct,
        total_time=max(0, end_time - quiz.start_time),
        average_times=average_times(answers),
        frequency_data=records,
        answers=list(answers),
        progress_score=clamp_score(round1(session_score)),
        percentage_score=int(math.floor(100 * correct / total + 0.5)) if total else 0,
    )
    return result, updated

