"""Turn raw learner input into scored answers."""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from vocab_drill.models import (
    FillBlankAnswer,
    FillBlankQuestion,
    MatchConnection,
    MatchingAnswer,
    MatchingItem,
    MatchingQuestion,
    MultipleChoiceAnswer,
    MultipleChoiceQuestion,
    SentenceArrangementAnswer,
    SentenceArrangementQuestion,
    SentenceCompletionAnswer,
    SentenceCompletionQuestion,
)
from vocab_drill.segmenter import strip_punctuation


def normalize_answer(text: str) -> str:
    return strip_punctuation(text).lower()


def grade_choice(
    question: MultipleChoiceQuestion | FillBlankQuestion,
    option_id: str,
    time_spent: int = 0,
) -> MultipleChoiceAnswer | FillBlankAnswer:
    option = next((o for o in question.options if o.id == option_id), None)
    is_correct = option is not None and option.is_correct
    cls = MultipleChoiceAnswer if isinstance(question, MultipleChoiceQuestion) else FillBlankAnswer
    return cls(
        question_id=question.id,
        selected_option=option_id,
        is_correct=is_correct,
        time_spent=time_spent,
    )


def pair_connections(
    items: Sequence[MatchingItem],
    connections: Sequence[MatchConnection],
) -> list[tuple[MatchingItem, MatchConnection | None]]:
    """Give every item at most one placed row, never handing a row out twice.

    Rows are looked up by the item's word. Homographs share a word, so among
    the rows for that word the one agreeing with the item's reading and
    meaning is taken first; extra rows are ignored.
    """
    unused = list(range(len(connections)))
    pairs = []
    for item in items:
        candidates = [i for i in unused if connections[i].word == item.word]
        chosen = next((i for i in candidates if _agrees(item, connections[i])), None)
        if chosen is None and candidates:
            chosen = candidates[0]
        if chosen is not None:
            unused.remove(chosen)
        pairs.append((item, connections[chosen] if chosen is not None else None))
    return pairs


def _agrees(item: MatchingItem, row: MatchConnection) -> bool:
    return row.reading == item.reading and row.meaning == item.meaning


def grade_matching(
    question: MatchingQuestion,
    placements: Sequence[dict],
    time_spent: int = 0,
) -> MatchingAnswer:
    """*placements* holds one ``{"word", "reading", "meaning"}`` row per
    item as arranged by the learner; missing cells count as wrong.

    Each item is graded once, so repeated rows cannot push the count past
    the number of items.
    """
    rows = [
        MatchConnection(
            word=row.get("word", ""),
            reading=row.get("reading", ""),
            meaning=row.get("meaning", ""),
            is_correct=False,
        )
        for row in placements
    ]
    connections = []
    for item, row in pair_connections(question.items, rows):
        if row is None:
            row = MatchConnection(word=item.word, reading="", meaning="", is_correct=False)
        connections.append(replace(row, is_correct=_agrees(item, row)))
    return MatchingAnswer(
        question_id=question.id,
        connections=connections,
        correct_count=sum(1 for c in connections if c.is_correct),
        time_spent=time_spent,
    )


def grade_arrangement(
    question: SentenceArrangementQuestion,
    arranged_ids: Sequence[str],
    time_spent: int = 0,
) -> SentenceArrangementAnswer:
    positions = {t.id: t.position for t in question.tokens}
    correct_count = sum(
        1 for index, token_id in enumerate(arranged_ids)
        if positions.get(token_id) == index
    )
    total = len(question.tokens)
    return SentenceArrangementAnswer(
        question_id=question.id,
        arranged_ids=list(arranged_ids),
        is_correct=correct_count == total,
        correct_count=correct_count,
        total_words=total,
        time_spent=time_spent,
    )


def grade_completion(
    question: SentenceCompletionQuestion,
    user_input: str,
    time_spent: int = 0,
) -> SentenceCompletionAnswer:
    return SentenceCompletionAnswer(
        question_id=question.id,
        user_input=user_input.strip(),
        is_correct=bool(user_input.strip())
        and normalize_answer(user_input) == normalize_answer(question.blank_word),
        time_spent=time_spent,
    )
