"""Session-scoped answer counters per vocabulary entry.

The frequency map is treated as an immutable snapshot: ``apply_answer``
returns a new mapping and never mutates its input.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace

from vocab_drill.grading import pair_connections
from vocab_drill.models import (
    Answer,
    FillBlankAnswer,
    FillBlankQuestion,
    FrequencyRecord,
    MatchingAnswer,
    MatchingQuestion,
    MultipleChoiceAnswer,
    MultipleChoiceQuestion,
    Question,
    Quiz,
    SentenceArrangementAnswer,
    SentenceArrangementQuestion,
    SentenceCompletionAnswer,
    SentenceCompletionQuestion,
    VocabEntry,
)
from vocab_drill.question_generator import question_vocab_ids


def init_frequency(quiz: Quiz, corpus: Iterable[VocabEntry]) -> dict[str, FrequencyRecord]:
    by_id = {e.id: e for e in corpus}
    frequency: dict[str, FrequencyRecord] = {}
    for question in quiz.questions:
        for vid in question_vocab_ids(question):
            if vid in frequency or vid not in by_id:
                continue
            entry = by_id[vid]
            frequency[vid] = FrequencyRecord(
                word_id=vid,
                word=entry.word,
                reading=entry.reading,
                meanings=entry.meanings,
            )
    return frequency


def record_outcome(record: FrequencyRecord, is_correct: bool) -> FrequencyRecord:
    appearances = record.appearances + 1
    correct = record.correct_answers + (1 if is_correct else 0)
    return replace(
        record,
        appearances=appearances,
        correct_answers=correct,
        incorrect_answers=record.incorrect_answers + (0 if is_correct else 1),
        accuracy=correct / appearances,
    )


def answer_outcomes(question: Question, answer: Answer) -> list[tuple[str, bool]]:
    """(vocabulary id, correct?) for every entry an answer touches."""
    if isinstance(question, MultipleChoiceQuestion) and isinstance(answer, MultipleChoiceAnswer):
        return [(question.correct_answer.id, answer.is_correct)]
    if isinstance(question, FillBlankQuestion) and isinstance(answer, FillBlankAnswer):
        return [(question.correct_answer.id, answer.is_correct)]
    if isinstance(question, SentenceArrangementQuestion) and isinstance(answer, SentenceArrangementAnswer):
        return [(question.vocab_entry.id, answer.is_correct)]
    if isinstance(question, SentenceCompletionQuestion) and isinstance(answer, SentenceCompletionAnswer):
        return [(question.vocab_entry.id, answer.is_correct)]
    if isinstance(question, MatchingQuestion) and isinstance(answer, MatchingAnswer):
        return [
            (item.id, row is not None and row.reading == item.reading and row.meaning == item.meaning)
            for item, row in pair_connections(question.items, answer.connections)
        ]
    raise TypeError(
        f"Answer {type(answer).__name__} does not match question {type(question).__name__}"
    )


def apply_answer(
    frequency: Mapping[str, FrequencyRecord],
    question: Question,
    answer: Answer,
) -> dict[str, FrequencyRecord]:
    updated = dict(frequency)
    for vid, is_correct in answer_outcomes(question, answer):
        record = updated.get(vid)
        if record is not None:
            updated[vid] = record_outcome(record, is_correct)
    return updated
