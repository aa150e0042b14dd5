"""Tests for progress scoring and result aggregation."""
from __future__ import annotations

import pytest

from vocab_drill.models import (
    FrequencyRecord,
    MatchingAnswer,
    MatchingItem,
    MatchingQuestion,
    MultipleChoiceAnswer,
    MultipleChoiceQuestion,
    Quiz,
    WordStats,
)
from vocab_drill.progress import (
    apply_session,
    average_times,
    build_result,
    progress_points,
    round1,
    word_delta,
)
from vocab_drill.tracker import apply_answer, init_frequency


class TestProgressPoints:
    @pytest.mark.parametrize("appearances,correct,expected", [
        (0, True, 10.0),
        (50, True, 2.0),
        (25, False, -5.0),
        (100, True, 2.0),
        (1, False, -9.8),
        (40, True, 2.0),
        (39, True, 2.2),
    ])
    def test_decay(self, appearances, correct, expected):
        assert progress_points(appearances, correct) == expected

    def test_round_half_up(self):
        assert round1(0.25) == 0.3
        assert round1(-0.25) == -0.3
        assert round1(2.0) == 2.0


class TestWordDelta:
    def test_correct_then_incorrect(self):
        # +10 at 0 appearances, then -9.8 at 1
        assert word_delta(0, 1, 1) == pytest.approx(0.2)

    def test_no_answers(self):
        assert word_delta(10, 0, 0) == 0


def _record(correct, incorrect):
    return FrequencyRecord(
        word_id="w", word="猫", reading="māo", meanings=("cat",),
        appearances=correct + incorrect,
        correct_answers=correct,
        incorrect_answers=incorrect,
    )


def _stats(score=0.0, appearances=0):
    return WordStats(
        word_id="w", word="猫", reading="māo", meanings=["cat"],
        total_appearances=appearances, progress_score=score,
    )


class TestApplySession:
    def test_accumulates(self):
        updated = apply_session(_stats(), _record(2, 1))
        assert updated.total_appearances == 3
        assert updated.total_correct == 2
        assert updated.total_incorrect == 1
        # +10, +9.8, -9.6
        assert updated.progress_score == pytest.approx(10.2)

    def test_clamped_high(self):
        assert apply_session(_stats(score=99.0), _record(1, 0)).progress_score == 100.0

    def test_clamped_low(self):
        stats = _stats()
        for _ in range(30):
            stats = apply_session(stats, _record(0, 3))
            assert -100.0 <= stats.progress_score <= 100.0
        assert stats.progress_score == -100.0


def _mc(qid, entry):
    return MultipleChoiceQuestion(
        id=qid, variant="word-to-meaning", prompt=entry.word, prompt_text="",
        correct_answer=entry, options=[],
    )


def _mc_answer(qid, ok, time_spent=1000):
    return MultipleChoiceAnswer(question_id=qid, selected_option="o", is_correct=ok, time_spent=time_spent)


class TestBuildResult:
    def test_one_right_one_wrong_on_new_word(self, sample_corpus):
        entry = sample_corpus[0]
        quiz = Quiz(id="quiz", length="short", questions=(_mc("q1", entry), _mc("q2", entry)), start_time=1000)
        frequency = init_frequency(quiz, sample_corpus)
        answers = [_mc_answer("q1", True), _mc_answer("q2", False, 3000)]
        for q, a in zip(quiz.questions, answers):
            frequency = apply_answer(frequency, q, a)

        result, updated = build_result(quiz, answers, frequency, {}, end_time=6000)

        assert result.total_questions == 2
        assert result.correct_count == 1
        assert result.incorrect_count == 1
        assert result.percentage_score == 50
        assert result.total_time == 5000
        assert result.progress_score == pytest.approx(0.2)
        assert result.frequency_data[0].progress_points == pytest.approx(0.2)
        assert result.average_times["multiple-choice"] == 2000
        assert updated[0].total_appearances == 2
        assert updated[0].progress_score == pytest.approx(0.2)

    def test_prior_stats_reduce_weight(self, sample_corpus):
        entry = sample_corpus[0]
        quiz = Quiz(id="quiz", length="short", questions=(_mc("q1", entry),), start_time=0)
        frequency = apply_answer(init_frequency(quiz, sample_corpus), quiz.questions[0], _mc_answer("q1", True))
        prior = {entry.id: WordStats(
            word_id=entry.id, word=entry.word, reading=entry.reading,
            meanings=list(entry.meanings), total_appearances=25, progress_score=40.0,
        )}
        result, updated = build_result(quiz, [_mc_answer("q1", True)], frequency, prior, end_time=0)
        assert result.progress_score == 5.0
        assert updated[0].progress_score == 45.0
        assert updated[0].total_appearances == 26

    def test_unanswered_words_excluded(self, sample_corpus):
        quiz = Quiz(
            id="quiz", length="short",
            questions=(_mc("q1", sample_corpus[0]), _mc("q2", sample_corpus[1])),
            start_time=0,
        )
        frequency = apply_answer(init_frequency(quiz, sample_corpus), quiz.questions[0], _mc_answer("q1", True))
        result, updated = build_result(quiz, [_mc_answer("q1", True)], frequency, {}, end_time=0)
        assert [r.word_id for r in result.frequency_data] == [sample_corpus[0].id]
        assert len(updated) == 1
        assert result.total_questions == 2
        assert result.percentage_score == 50

    def test_frequency_sorted_by_points(self, sample_corpus):
        a, b = sample_corpus[:2]
        quiz = Quiz(id="quiz", length="short", questions=(_mc("q1", a), _mc("q2", b)), start_time=0)
        answers = [_mc_answer("q1", False), _mc_answer("q2", True)]
        frequency = init_frequency(quiz, sample_corpus)
        for q, ans in zip(quiz.questions, answers):
            frequency = apply_answer(frequency, q, ans)
        result, _ = build_result(quiz, answers, frequency, {}, end_time=0)
        assert [r.word_id for r in result.frequency_data] == [b.id, a.id]

    def test_matching_counts_items(self, sample_corpus):
        items = [
            MatchingItem(id=e.id, word=e.word, reading=e.reading, meaning=e.meaning)
            for e in sample_corpus[:4]
        ]
        q = MatchingQuestion(id="m", items=items, shuffled_words=[], shuffled_readings=[], shuffled_meanings=[])
        quiz = Quiz(id="quiz", length="short", questions=(q,), start_time=0)
        answer = MatchingAnswer(question_id="m", connections=[], correct_count=3, time_spent=0)
        result, _ = build_result(quiz, [answer], {}, {}, end_time=0)
        assert result.total_questions == 4
        assert result.percentage_score == 75

    def test_empty_quiz(self):
        quiz = Quiz(id="quiz", length="short", questions=(), start_time=0)
        result, updated = build_result(quiz, [], {}, {}, end_time=0)
        assert result.percentage_score == 0
        assert result.progress_score == 0
        assert updated == []


def test_average_times_per_type():
    answers = [_mc_answer("a", True, 1000), _mc_answer("b", True, 2000)]
    averages = average_times(answers)
    assert averages["multiple-choice"] == 1500
    assert averages["matching"] == 0.0
