"""Build quiz questions of each archetype from a vocabulary pool.

Every generator takes the candidate pool plus the ids already used in the
quiz and returns a question, or ``None`` when the pool cannot support the
archetype.  Generators never raise for small or incomplete pools.
"""
from __future__ import annotations

import logging
import random
import uuid
from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

from vocab_drill.config import QUESTION_TEXTS, Settings
from vocab_drill.models import (
    FillBlankQuestion,
    MatchingItem,
    MatchingQuestion,
    MultipleChoiceQuestion,
    Option,
    Question,
    SentenceArrangementQuestion,
    SentenceCompletionQuestion,
    SentenceToken,
    VocabEntry,
)
from vocab_drill.segmenter import Segment, segment_sentence, split_characters, strip_punctuation

_log = logging.getLogger("vocab_drill.qgen")

T = TypeVar("T")

# Variant → (prompt field, option field)
VARIANT_FIELDS = {
    "word-to-reading": ("word", "reading"),
    "reading-to-word": ("reading", "word"),
    "meaning-to-word": ("meaning", "word"),
    "meaning-to-reading": ("meaning", "reading"),
    "word-to-meaning": ("word", "meaning"),
    "reading-to-meaning": ("reading", "meaning"),
}


def new_id() -> str:
    return uuid.uuid4().hex[:16]


def shuffled(items: Iterable[T], rng: random.Random) -> list[T]:
    result = list(items)
    rng.shuffle(result)
    return result


def field_value(entry: VocabEntry, name: str) -> str:
    if name == "meaning":
        return entry.meaning
    return getattr(entry, name)


def _length_candidates(
    target_len: int,
    others: Sequence[VocabEntry],
    key: Callable[[VocabEntry], str],
    count: int,
    max_tolerance: int,
) -> tuple[list[VocabEntry], int | None]:
    """Widen the length window one character at a time until *count*
    candidates match.  Returns (candidates, tolerance) or (others, None) when
    even the widest window is too narrow."""
    for tolerance in range(max_tolerance + 1):
        candidates = [v for v in others if abs(len(key(v)) - target_len) <= tolerance]
        if len(candidates) >= count:
            return candidates, tolerance
    return list(others), None


def select_distractors(
    correct: VocabEntry,
    pool: Sequence[VocabEntry],
    key: Callable[[VocabEntry], str],
    count: int,
    max_tolerance: int,
    rng: random.Random,
) -> list[VocabEntry]:
    correct_value = key(correct)
    others = [v for v in pool if v.id != correct.id and key(v) != correct_value]
    if len(others) < count:
        # Not enough distinct values; allow duplicates
        others = [v for v in pool if v.id != correct.id]
    candidates, tolerance = _length_candidates(len(correct_value), others, key, count, max_tolerance)
    if tolerance is None:
        _log.debug("No length match within ±%d for %r, sampling whole pool", max_tolerance, correct_value)
    return rng.sample(candidates, min(count, len(candidates)))


def _options(
    correct: VocabEntry,
    distractors: list[VocabEntry],
    key: Callable[[VocabEntry], str],
    labels: Sequence[str],
    rng: random.Random,
) -> list[Option]:
    # Labels follow shuffled position
    entries = shuffled([correct, *distractors], rng)
    return [
        Option(id=e.id, label=labels[i], value=key(e), is_correct=e.id == correct.id)
        for i, e in enumerate(entries)
    ]


def generate_multiple_choice(
    pool: Sequence[VocabEntry],
    used_ids: set[str],
    settings: Settings | None = None,
    rng: random.Random | None = None,
) -> MultipleChoiceQuestion | None:
    settings = settings or Settings()
    rng = rng or random.Random()

    available = [v for v in pool if v.id not in used_ids]
    if len(available) < settings.mc_option_count:
        return None

    correct = rng.choice(available)
    variant = rng.choice(settings.mc_variants)
    prompt_field, option_field = VARIANT_FIELDS[variant]

    def key(e: VocabEntry) -> str:
        return field_value(e, option_field)

    distractors = select_distractors(
        correct, pool, key,
        count=min(settings.mc_distractor_count, settings.mc_option_count - 1),
        max_tolerance=settings.mc_length_tolerance,
        rng=rng,
    )
    return MultipleChoiceQuestion(
        id=new_id(),
        variant=variant,
        prompt=field_value(correct, prompt_field),
        prompt_text=QUESTION_TEXTS.get(variant, ""),
        correct_answer=correct,
        options=_options(correct, distractors, key, settings.option_labels, rng),
    )


def generate_matching(
    pool: Sequence[VocabEntry],
    used_ids: set[str],
    settings: Settings | None = None,
    rng: random.Random | None = None,
    item_count: int | None = None,
) -> MatchingQuestion | None:
    settings = settings or Settings()
    rng = rng or random.Random()
    target = item_count or rng.randint(settings.matching_min_items, settings.matching_max_items)

    available = [v for v in pool if v.id not in used_ids]
    if len(available) < target:
        # Matching may reuse entries already asked elsewhere in the quiz
        used = [v for v in pool if v.id in used_ids]
        available += rng.sample(used, min(target - len(available), len(used)))
    if len(available) < target:
        return None

    items = [
        MatchingItem(
            id=e.id,
            word=e.word,
            reading=e.reading,
            meaning=e.meaning,
            example=e.example,
            example_meaning=e.example_meaning,
        )
        for e in rng.sample(available, target)
    ]
    # Columns are shuffled independently of each other and of item order
    return MatchingQuestion(
        id=new_id(),
        items=items,
        shuffled_words=shuffled((i.word for i in items), rng),
        shuffled_readings=shuffled((i.reading for i in items), rng),
        shuffled_meanings=shuffled((i.meaning for i in items), rng),
    )


def generate_fill_blank(
    pool: Sequence[VocabEntry],
    used_ids: set[str],
    settings: Settings | None = None,
    rng: random.Random | None = None,
) -> FillBlankQuestion | None:
    settings = settings or Settings()
    rng = rng or random.Random()

    available = [
        v for v in pool
        if v.id not in used_ids and v.example and v.word in v.example
    ]
    if not available:
        return None
    distractor_count = min(settings.fill_blank_distractor_count, settings.fill_blank_option_count - 1)
    if len(pool) - 1 < distractor_count:
        return None

    correct = rng.choice(available)
    blank_position = correct.example.find(correct.word)
    if blank_position == -1:
        return None

    def key(e: VocabEntry) -> str:
        return e.word

    distractors = select_distractors(
        correct, pool, key,
        count=distractor_count,
        max_tolerance=settings.fill_blank_length_tolerance,
        rng=rng,
    )
    return FillBlankQuestion(
        id=new_id(),
        sentence=correct.example,
        sentence_reading=correct.example_reading,
        sentence_meaning=correct.example_meaning,
        blank_position=blank_position,
        blank_length=len(correct.word),
        correct_answer=correct,
        options=_options(correct, distractors, key, settings.option_labels, rng),
    )


def _sentence_candidates(pool: Sequence[VocabEntry], used_ids: set[str]) -> list[VocabEntry]:
    return [
        v for v in pool
        if v.id not in used_ids
        and v.example
        and v.example_reading
        and len(v.example) >= 4
    ]


def generate_sentence_arrangement(
    pool: Sequence[VocabEntry],
    used_ids: set[str],
    settings: Settings | None = None,
    rng: random.Random | None = None,
) -> SentenceArrangementQuestion | None:
    settings = settings or Settings()
    rng = rng or random.Random()

    candidates = shuffled(_sentence_candidates(pool, used_ids), rng)
    if not candidates:
        return None

    chosen: VocabEntry | None = None
    segments: list[Segment] = []
    for entry in candidates:
        segs = segment_sentence(entry.example, entry.example_reading)
        if settings.arrangement_min_words <= len(segs) <= settings.arrangement_max_words:
            chosen, segments = entry, segs
            break

    if chosen is None:
        chosen = candidates[0]
        segments = segment_sentence(chosen.example, chosen.example_reading)
        if len(segments) < settings.arrangement_min_words:
            segments = split_characters(chosen.example)
        _log.debug("No sentence within %d-%d words, using %d tokens",
                   settings.arrangement_min_words, settings.arrangement_max_words, len(segments))

    question_id = new_id()
    tokens = [
        SentenceToken(id=f"{question_id}-{i}", text=seg.text, position=i)
        for i, seg in enumerate(segments)
    ]
    return SentenceArrangementQuestion(
        id=question_id,
        correct_sentence=chosen.example,
        sentence_reading=chosen.example_reading,
        sentence_meaning=chosen.example_meaning,
        tokens=tokens,
        shuffled_tokens=shuffled(tokens, rng),
        vocab_entry=chosen,
    )


def _pick_blank(
    entry: VocabEntry,
    segments: list[Segment],
    min_length: int,
    rng: random.Random,
) -> int | None:
    for i, seg in enumerate(segments):
        if strip_punctuation(seg.text) == entry.word:
            return i
    long_enough = [i for i, seg in enumerate(segments) if len(strip_punctuation(seg.text)) >= min_length]
    return rng.choice(long_enough) if long_enough else None


def generate_sentence_completion(
    pool: Sequence[VocabEntry],
    used_ids: set[str],
    settings: Settings | None = None,
    rng: random.Random | None = None,
) -> SentenceCompletionQuestion | None:
    settings = settings or Settings()
    rng = rng or random.Random()

    for entry in shuffled(_sentence_candidates(pool, used_ids), rng):
        segments = segment_sentence(entry.example, entry.example_reading)
        index = _pick_blank(entry, segments, settings.completion_min_word_length, rng)
        if index is None:
            continue
        seg = segments[index]
        blank_word = strip_punctuation(seg.text)
        return SentenceCompletionQuestion(
            id=new_id(),
            sentence=entry.example,
            sentence_meaning=entry.example_meaning,
            blank_word=blank_word,
            blank_word_with_punctuation=entry.example[seg.start:seg.end],
            blank_reading=entry.reading if blank_word == entry.word else seg.reading,
            blank_position=index,
            before_blank=entry.example[:seg.start],
            after_blank=entry.example[seg.end:],
            vocab_entry=entry,
        )
    return None


def question_vocab_ids(question: Question) -> list[str]:
    """Vocabulary ids a question exercises (one per matching item)."""
    if isinstance(question, (MultipleChoiceQuestion, FillBlankQuestion)):
        return [question.correct_answer.id]
    if isinstance(question, (SentenceArrangementQuestion, SentenceCompletionQuestion)):
        return [question.vocab_entry.id]
    if isinstance(question, MatchingQuestion):
        return [item.id for item in question.items]
    raise TypeError(f"Unknown question type: {type(question).__name__}")
