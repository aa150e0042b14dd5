from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Union

MULTIPLE_CHOICE = "multiple-choice"
MATCHING = "matching"
FILL_BLANK = "fill-blank"
SENTENCE_ARRANGEMENT = "sentence-arrangement"
SENTENCE_COMPLETION = "sentence-completion"

QUESTION_TYPES = (
    MULTIPLE_CHOICE,
    MATCHING,
    FILL_BLANK,
    SENTENCE_ARRANGEMENT,
    SENTENCE_COMPLETION,
)


def entry_id(word: str, reading: str) -> str:
    """Stable id for a vocabulary entry: distinct readings of one word differ."""
    return hashlib.md5(f"{word}_{reading}".strip().encode()).hexdigest()


@dataclass(frozen=True)
class VocabEntry:
    id: str
    word: str
    reading: str
    meanings: tuple[str, ...]
    word_class: str = ""
    example: str = ""
    example_reading: str = ""
    example_meaning: str = ""
    tier: int | None = None

    @classmethod
    def create(cls, word: str, reading: str, meanings, **kwargs) -> VocabEntry:
        return cls(
            id=entry_id(word, reading),
            word=word,
            reading=reading,
            meanings=tuple(meanings),
            **kwargs,
        )

    @property
    def meaning(self) -> str:
        return self.meanings[0] if self.meanings else ""


# ── Questions ─────────────────────────────────────────────────────────────

@dataclass
class Option:
    id: str
    label: str  # positional marker: A, B, C…
    value: str
    is_correct: bool


@dataclass
class MatchingItem:
    id: str
    word: str
    reading: str
    meaning: str
    example: str = ""
    example_meaning: str = ""


@dataclass
class SentenceToken:
    id: str
    text: str
    position: int  # 0-based index in the correct sentence


@dataclass
class MultipleChoiceQuestion:
    id: str
    variant: str  # e.g. word-to-reading
    prompt: str
    prompt_text: str
    correct_answer: VocabEntry
    options: list[Option]
    type: str = MULTIPLE_CHOICE


@dataclass
class MatchingQuestion:
    id: str
    items: list[MatchingItem]
    shuffled_words: list[str]
    shuffled_readings: list[str]
    shuffled_meanings: list[str]
    type: str = MATCHING


@dataclass
class FillBlankQuestion:
    id: str
    sentence: str
    sentence_reading: str
    sentence_meaning: str
    blank_position: int  # character offset of the blank
    blank_length: int
    correct_answer: VocabEntry
    options: list[Option]
    type: str = FILL_BLANK


@dataclass
class SentenceArrangementQuestion:
    id: str
    correct_sentence: str
    sentence_reading: str
    sentence_meaning: str
    tokens: list[SentenceToken]
    shuffled_tokens: list[SentenceToken]
    vocab_entry: VocabEntry
    type: str = SENTENCE_ARRANGEMENT


@dataclass
class SentenceCompletionQuestion:
    id: str
    sentence: str
    sentence_meaning: str
    blank_word: str
    blank_word_with_punctuation: str
    blank_reading: str
    blank_position: int  # token index of the blank
    before_blank: str
    after_blank: str
    vocab_entry: VocabEntry
    type: str = SENTENCE_COMPLETION


Question = Union[
    MultipleChoiceQuestion,
    MatchingQuestion,
    FillBlankQuestion,
    SentenceArrangementQuestion,
    SentenceCompletionQuestion,
]


# ── Answers ───────────────────────────────────────────────────────────────

@dataclass
class MultipleChoiceAnswer:
    question_id: str
    selected_option: str
    is_correct: bool
    time_spent: int  # milliseconds
    type: str = MULTIPLE_CHOICE


@dataclass
class MatchConnection:
    word: str
    reading: str
    meaning: str
    is_correct: bool


@dataclass
class MatchingAnswer:
    question_id: str
    connections: list[MatchConnection]
    correct_count: int
    time_spent: int
    type: str = MATCHING


@dataclass
class FillBlankAnswer:
    question_id: str
    selected_option: str
    is_correct: bool
    time_spent: int
    type: str = FILL_BLANK


@dataclass
class SentenceArrangementAnswer:
    question_id: str
    arranged_ids: list[str]
    is_correct: bool
    correct_count: int
    total_words: int
    time_spent: int
    type: str = SENTENCE_ARRANGEMENT


@dataclass
class SentenceCompletionAnswer:
    question_id: str
    user_input: str
    is_correct: bool
    time_spent: int
    type: str = SENTENCE_COMPLETION


Answer = Union[
    MultipleChoiceAnswer,
    MatchingAnswer,
    FillBlankAnswer,
    SentenceArrangementAnswer,
    SentenceCompletionAnswer,
]


# ── Quiz, tracking and results ────────────────────────────────────────────

@dataclass(frozen=True)
class Quiz:
    id: str
    length: str
    questions: tuple[Question, ...]
    start_time: int  # epoch milliseconds


@dataclass(frozen=True)
class FrequencyRecord:
    word_id: str
    word: str
    reading: str
    meanings: tuple[str, ...]
    appearances: int = 0
    correct_answers: int = 0
    incorrect_answers: int = 0
    accuracy: float = 0.0  # correct_answers / appearances
    progress_points: float = 0.0


@dataclass
class WordStats:
    word_id: str
    word: str
    reading: str
    meanings: list[str]
    total_appearances: int = 0
    total_correct: int = 0
    total_incorrect: int = 0
    progress_score: float = 0.0  # always within [-100, 100]


@dataclass
class QuizResult:
    quiz_id: str
    length: str
    finished_at: str
    total_questions: int
    correct_count: int
    incorrect_count: int
    total_time: int
    average_times: dict[str, float]
    frequency_data: list[FrequencyRecord]
    answers: list[Answer]
    progress_score: float
    percentage_score: int


@dataclass
class QuizHistory:
    quiz_id: str
    finished_at: str
    length: str
    score: int
    progress_score: float
    total_questions: int
    correct_count: int
    incorrect_count: int
    duration: int
    frequency_data: list[dict] = field(default_factory=list)
    id: int | None = None
