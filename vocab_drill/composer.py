"""Assemble a full quiz from the per-archetype generators.

Strategy: the question budget is split across archetypes by configured
weights, every question draws a proficiency tier by weight, and generation
falls back to the whole corpus when the tier pool cannot support the slot.
"""
from __future__ import annotations

import logging
import math
import random
import time
import uuid
from collections.abc import Callable, Sequence
from typing import TypeVar

from vocab_drill.config import Settings
from vocab_drill.models import (
    FILL_BLANK,
    MATCHING,
    MULTIPLE_CHOICE,
    QUESTION_TYPES,
    SENTENCE_ARRANGEMENT,
    SENTENCE_COMPLETION,
    Question,
    Quiz,
    VocabEntry,
)
from vocab_drill.question_generator import (
    generate_fill_blank,
    generate_matching,
    generate_multiple_choice,
    generate_sentence_arrangement,
    generate_sentence_completion,
    question_vocab_ids,
    shuffled,
)

_log = logging.getLogger("vocab_drill.composer")

T = TypeVar("T")

GENERATORS = {
    MULTIPLE_CHOICE: generate_multiple_choice,
    MATCHING: generate_matching,
    FILL_BLANK: generate_fill_blank,
    SENTENCE_ARRANGEMENT: generate_sentence_arrangement,
    SENTENCE_COMPLETION: generate_sentence_completion,
}

# Generation order; multiple-choice ignores used ids so it goes last
GENERATION_ORDER = (
    MATCHING,
    FILL_BLANK,
    SENTENCE_ARRANGEMENT,
    SENTENCE_COMPLETION,
    MULTIPLE_CHOICE,
)


# ── Policies ──────────────────────────────────────────────────────────────

def with_fallback(
    generate: Callable[[Sequence[VocabEntry]], T | None],
    pool: Sequence[VocabEntry],
    fallback_pool: Sequence[VocabEntry],
) -> T | None:
    """Try *pool* first, then *fallback_pool* once (skipped if identical)."""
    result = generate(pool)
    if result is None and fallback_pool is not pool:
        result = generate(fallback_pool)
    return result


def fill_slots(attempt: Callable[[], T | None], target: int, max_attempts: int) -> list[T]:
    """Call *attempt* until *target* results are collected or
    *max_attempts* calls have been made; ``None`` results are dropped."""
    results: list[T] = []
    attempts = 0
    while len(results) < target and attempts < max_attempts:
        result = attempt()
        if result is not None:
            results.append(result)
        attempts += 1
    return results


# ── Distribution ──────────────────────────────────────────────────────────

def distribute_counts(
    question_count: int,
    weights: dict[str, float],
    leftover_type: str = FILL_BLANK,
) -> dict[str, int]:
    """Split *question_count* across archetypes.

    Each archetype gets one question when the budget allows it, the rest is
    shared by weight (floored), and the rounding leftover goes entirely to
    *leftover_type*.
    """
    types = list(weights)
    if not types:
        return {}
    if leftover_type not in weights:
        leftover_type = types[0]

    guaranteed = 1 if question_count >= len(types) else 0
    counts = {t: guaranteed for t in types}
    remaining = question_count - guaranteed * len(types)

    total_weight = sum(max(0.0, w) for w in weights.values())
    if total_weight > 0:
        for t in types:
            counts[t] += math.floor(remaining * max(0.0, weights[t]) / total_weight)
    counts[leftover_type] += question_count - sum(counts.values())
    return counts


def parse_tier_weights(tier_weights: dict[str, float]) -> dict[int, float]:
    """Tier number to non-negative weight; keys that are not tier numbers
    are skipped with a warning."""
    tiers: dict[int, float] = {}
    for key, weight in tier_weights.items():
        try:
            tiers[int(key)] = max(0.0, float(weight))
        except (TypeError, ValueError):
            _log.warning("Ignoring tier weight %r: %r (tier keys must be numbers)", key, weight)
    return tiers


def pick_tier(tier_weights: dict, rng: random.Random) -> int | None:
    """Weighted draw over tiers via the cumulative distribution; ``None``
    when no usable tier is configured."""
    tiers = list(parse_tier_weights(tier_weights).items())
    if not tiers:
        return None
    total = sum(w for _, w in tiers)
    r = rng.random() * total
    cumulative = 0.0
    for tier, weight in tiers:
        cumulative += weight
        if r < cumulative:
            return tier
    return tiers[-1][0]



def min_pool_size(question_type: str, settings: Settings) -> int:
    if question_type == MULTIPLE_CHOICE:
        return settings.mc_option_count
    if question_type == MATCHING:
        return settings.matching_min_items
    if question_type == FILL_BLANK:
        return settings.fill_blank_option_count
    return 1


# ── Quiz ──────────────────────────────────────────────────────────────────

def new_quiz_id() -> str:
    return f"quiz_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def compose_quiz(
    corpus: Sequence[VocabEntry],
    length: str,
    settings: Settings | None = None,
    question_type: str | None = None,
    rng: random.Random | None = None,
) -> Quiz:
    """Generate a quiz of *length* from *corpus*.

    The result may hold fewer questions than requested when slots cannot be
    filled; callers needing an exact count must check the corpus first.
    """
    settings = settings or Settings()
    rng = rng or random.Random()
    if question_type is not None and question_type not in QUESTION_TYPES:
        raise ValueError(f"Unknown question type: {question_type}")

    corpus = list(corpus)
    question_count = min(settings.question_count(length), len(corpus))
    if question_type is not None:
        counts = {question_type: question_count}
    else:
        weights = {t: settings.question_type_weights.get(t, 0) for t in QUESTION_TYPES}
        counts = distribute_counts(question_count, weights)
    _log.info("Composing %s quiz: %s", length, counts)

    by_tier: dict[int, list[VocabEntry]] = {}
    for entry in corpus:
        if entry.tier is not None:
            by_tier.setdefault(entry.tier, []).append(entry)
    tier_weights = parse_tier_weights(settings.tier_weights)
    has_tiers = bool(by_tier) and bool(tier_weights)

    used_ids: set[str] = set()
    questions: list[Question] = []

    for qtype in GENERATION_ORDER:
        target = counts.get(qtype, 0)
        if target <= 0:
            continue
        generator = GENERATORS[qtype]
        reuse = qtype == MULTIPLE_CHOICE
        floor = min_pool_size(qtype, settings)

        def attempt(generator=generator, reuse=reuse, floor=floor):
            pool = corpus
            if has_tiers:
                pool = by_tier.get(pick_tier(tier_weights, rng), [])
                if len(pool) < floor:
                    pool = corpus
            exclude = set() if reuse else used_ids
            question = with_fallback(
                lambda p: generator(p, exclude, settings=settings, rng=rng),
                pool,
                corpus,
            )
            if question is not None:
                used_ids.update(question_vocab_ids(question))
            return question

        max_attempts = target * settings.mc_attempt_factor if reuse else target
        generated = fill_slots(attempt, target, max_attempts)
        if len(generated) < target:
            _log.warning("Dropped %d of %d %s slots", target - len(generated), target, qtype)
        questions.extend(generated)

    return Quiz(
        id=new_quiz_id(),
        length=length,
        questions=tuple(shuffled(questions, rng)),
        start_time=int(time.time() * 1000),
    )
