"""Tests for the per-archetype question generators."""
from __future__ import annotations

import random
from collections import Counter

import pytest

from vocab_drill.config import Settings
from vocab_drill.models import (
    FillBlankQuestion,
    MatchingItem,
    MatchingQuestion,
    MultipleChoiceQuestion,
    VocabEntry,
)
from vocab_drill.question_generator import (
    VARIANT_FIELDS,
    _length_candidates,
    field_value,
    generate_fill_blank,
    generate_matching,
    generate_multiple_choice,
    generate_sentence_arrangement,
    generate_sentence_completion,
    question_vocab_ids,
    select_distractors,
)
from vocab_drill.segmenter import strip_punctuation

from conftest import make_entry


def _by_length(n: int) -> list[VocabEntry]:
    """n entries whose words have lengths 1..n."""
    chars = "一二三四五六七八九十"
    return [make_entry(chars[i] * (i + 1), f"r{i}", f"m{i}") for i in range(n)]


class TestMultipleChoice:
    def test_option_count_and_single_correct(self, sample_corpus):
        for seed in range(30):
            q = generate_multiple_choice(sample_corpus, set(), rng=random.Random(seed))
            assert isinstance(q, MultipleChoiceQuestion)
            assert len(q.options) == 4
            assert sum(o.is_correct for o in q.options) == 1
            assert len({o.id for o in q.options}) == 4

    def test_correct_option_matches_variant(self, sample_corpus):
        for seed in range(30):
            q = generate_multiple_choice(sample_corpus, set(), rng=random.Random(seed))
            prompt_field, option_field = VARIANT_FIELDS[q.variant]
            correct = next(o for o in q.options if o.is_correct)
            assert correct.id == q.correct_answer.id
            assert correct.value == field_value(q.correct_answer, option_field)
            assert q.prompt == field_value(q.correct_answer, prompt_field)
            assert q.prompt_text

    def test_labels_follow_position(self, sample_corpus, rng):
        q = generate_multiple_choice(sample_corpus, set(), rng=rng)
        assert [o.label for o in q.options] == ["A", "B", "C", "D"]

    def test_used_ids_excluded_from_answer(self, sample_corpus):
        used = {e.id for e in sample_corpus[:8]}
        for seed in range(20):
            q = generate_multiple_choice(sample_corpus, used, rng=random.Random(seed))
            assert q.correct_answer.id not in used

    def test_too_few_available(self, sample_corpus, rng):
        assert generate_multiple_choice(sample_corpus[:3], set(), rng=rng) is None
        used = {e.id for e in sample_corpus[:9]}
        assert generate_multiple_choice(sample_corpus, used, rng=rng) is None

    def test_distinct_lengths_still_yield_four_options(self):
        settings = Settings(mc_variants=["reading-to-word"])
        pool = _by_length(6)
        for seed in range(20):
            q = generate_multiple_choice(pool, set(), settings=settings, rng=random.Random(seed))
            assert len(q.options) == 4
            assert sum(o.is_correct for o in q.options) == 1


class TestDistractors:
    def test_length_window_widens(self):
        pool = _by_length(6)
        target = pool[2]  # length 3
        others = [e for e in pool if e is not target]
        candidates, tolerance = _length_candidates(3, others, lambda e: e.word, 3, 2)
        assert tolerance == 2
        assert all(abs(len(e.word) - 3) <= 2 for e in candidates)

    def test_falls_back_to_whole_pool(self):
        pool = _by_length(6)
        others = pool[1:]  # lengths 2..6, target length 1
        candidates, tolerance = _length_candidates(1, others, lambda e: e.word, 3, 2)
        assert tolerance is None
        assert candidates == others

    def test_exact_match_preferred(self):
        pool = [make_entry(w, w, w) for w in ("aa", "bb", "cc", "dd", "eeeee")]
        candidates, tolerance = _length_candidates(2, pool[1:], lambda e: e.word, 3, 2)
        assert tolerance == 0
        assert {e.word for e in candidates} == {"bb", "cc", "dd"}

    def test_no_duplicate_display_values(self, rng):
        correct = make_entry("看", "kàn", "to look")
        twin = make_entry("瞧", "qiáo", "to look")
        others = [make_entry(w, w, f"m{w}") for w in ("甲", "乙", "丙")]
        picked = select_distractors(correct, [correct, twin, *others], lambda e: e.meaning, 3, 2, rng)
        assert twin not in picked
        assert len(picked) == 3

    def test_duplicate_values_allowed_when_pool_small(self, rng):
        correct = make_entry("看", "kàn", "to look")
        twin = make_entry("瞧", "qiáo", "to look")
        other = make_entry("听", "tīng", "to listen")
        picked = select_distractors(correct, [correct, twin, other], lambda e: e.meaning, 2, 2, rng)
        assert set(picked) == {twin, other}


class TestMatching:
    def test_columns_are_permutations(self, sample_corpus, rng):
        q = generate_matching(sample_corpus, set(), rng=rng)
        assert isinstance(q, MatchingQuestion)
        assert 3 <= len(q.items) <= 5
        assert Counter(q.shuffled_words) == Counter(i.word for i in q.items)
        assert Counter(q.shuffled_readings) == Counter(i.reading for i in q.items)
        assert Counter(q.shuffled_meanings) == Counter(i.meaning for i in q.items)

    def test_columns_not_aligned(self, sample_corpus):
        rng = random.Random(7)
        aligned = 0
        trials = 200
        for _ in range(trials):
            q = generate_matching(sample_corpus, set(), rng=rng, item_count=5)
            words = [i.word for i in q.items]
            readings = [i.reading for i in q.items]
            order = [words.index(w) for w in q.shuffled_words]
            if [readings[i] for i in order] == q.shuffled_readings:
                aligned += 1
        # Independent shuffles of 5 line up 1 time in 120
        assert aligned < trials // 10

    def test_reuses_used_entries(self, sample_corpus, rng):
        pool = sample_corpus[:4]
        used = {e.id for e in pool[:3]}
        q = generate_matching(pool, used, rng=rng, item_count=3)
        assert q is not None
        assert pool[3].id in {i.id for i in q.items}

    def test_pool_too_small(self, sample_corpus, rng):
        assert generate_matching(sample_corpus[:2], set(), rng=rng, item_count=3) is None

    def test_distinct_items(self, sample_corpus, rng):
        q = generate_matching(sample_corpus, set(), rng=rng, item_count=5)
        assert len({i.id for i in q.items}) == 5


class TestFillBlank:
    def test_blank_marks_word(self, sample_corpus):
        for seed in range(20):
            q = generate_fill_blank(sample_corpus, set(), rng=random.Random(seed))
            assert isinstance(q, FillBlankQuestion)
            word = q.correct_answer.word
            assert q.sentence[q.blank_position:q.blank_position + q.blank_length] == word
            assert len(q.options) == 4
            assert [o.value for o in q.options if o.is_correct] == [word]

    def test_entries_without_example_never_chosen(self, sample_corpus):
        for seed in range(30):
            q = generate_fill_blank(sample_corpus, set(), rng=random.Random(seed))
            assert q.correct_answer.word != "猫"

    def test_none_without_usable_example(self, entry_by_word, rng):
        cat = entry_by_word["猫"]
        mismatch = make_entry("狗", "gǒu", "dog", "我喜欢猫。", "wǒ xǐhuan māo.")
        assert generate_fill_blank([cat, mismatch], set(), rng=rng) is None

    def test_none_when_too_few_distractors(self, sample_corpus, rng):
        assert generate_fill_blank(sample_corpus[:3], set(), rng=rng) is None

    def test_respects_used_ids(self, sample_corpus, entry_by_word, rng):
        used = {e.id for e in sample_corpus if e.word != "天气"}
        q = generate_fill_blank(sample_corpus, used, rng=rng)
        assert q.correct_answer == entry_by_word["天气"]


class TestSentenceArrangement:
    def test_tokens_cover_sentence(self, sample_corpus):
        for seed in range(20):
            q = generate_sentence_arrangement(sample_corpus, set(), rng=random.Random(seed))
            assert [t.position for t in q.tokens] == list(range(len(q.tokens)))
            assert sorted(t.id for t in q.shuffled_tokens) == sorted(t.id for t in q.tokens)
            assert "".join(t.text for t in q.tokens) == q.correct_sentence
            assert 3 <= len(q.tokens) <= 8

    def test_token_ids_unique(self, sample_corpus, rng):
        q = generate_sentence_arrangement(sample_corpus, set(), rng=rng)
        assert len({t.id for t in q.tokens}) == len(q.tokens)

    def test_character_fallback(self, entry_by_word, rng):
        settings = Settings(arrangement_min_words=6)
        entry = entry_by_word["喜欢"]
        q = generate_sentence_arrangement([entry], set(), settings=settings, rng=rng)
        assert [t.text for t in q.tokens] == ["我", "喜", "欢", "喝", "茶。"]

    def test_out_of_range_keeps_segmentation(self, entry_by_word, rng):
        settings = Settings(arrangement_max_words=3)
        entry = entry_by_word["朋友"]  # five segments
        q = generate_sentence_arrangement([entry], set(), settings=settings, rng=rng)
        assert [t.text for t in q.tokens] == ["他", "是", "我", "的", "朋友。"]

    def test_none_without_sentences(self, entry_by_word, rng):
        short = make_entry("好", "hǎo", "good", "好。", "hǎo.")
        assert generate_sentence_arrangement([entry_by_word["猫"], short], set(), rng=rng) is None


class TestSentenceCompletion:
    def test_blank_is_vocabulary_word(self, entry_by_word, rng):
        entry = entry_by_word["喜欢"]
        q = generate_sentence_completion([entry], set(), rng=rng)
        assert q.blank_word == "喜欢"
        assert q.blank_reading == "xǐhuan"
        assert q.blank_position == 1
        assert q.before_blank == "我"
        assert q.after_blank == "喝茶。"

    def test_pieces_rebuild_sentence(self, sample_corpus):
        for seed in range(20):
            q = generate_sentence_completion(sample_corpus, set(), rng=random.Random(seed))
            assert q.before_blank + q.blank_word_with_punctuation + q.after_blank == q.sentence
            assert strip_punctuation(q.blank_word_with_punctuation) == q.blank_word

    def test_punctuation_kept_out_of_blank_word(self, entry_by_word, rng):
        entry = entry_by_word["学生"]
        q = generate_sentence_completion([entry], set(), rng=rng)
        assert q.blank_word == "学生"
        assert q.blank_word_with_punctuation == "学生。"
        assert q.after_blank == ""

    def test_none_without_sentences(self, entry_by_word, rng):
        assert generate_sentence_completion([entry_by_word["猫"]], set(), rng=rng) is None


class TestQuestionVocabIds:
    def test_matching_lists_every_item(self):
        items = [MatchingItem(id=str(i), word="w", reading="r", meaning="m") for i in range(3)]
        q = MatchingQuestion(id="q", items=items, shuffled_words=[], shuffled_readings=[], shuffled_meanings=[])
        assert question_vocab_ids(q) == ["0", "1", "2"]

    def test_unknown_type(self):
        with pytest.raises(TypeError):
            question_vocab_ids(object())
