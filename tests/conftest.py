"""Shared test fixtures."""
from __future__ import annotations

import random

import pytest

from vocab_drill.config import Settings
from vocab_drill.db import Database
from vocab_drill.models import VocabEntry


def make_entry(word, reading, meaning, example="", example_reading="", example_meaning="", tier=None):
    return VocabEntry.create(
        word,
        reading,
        [meaning],
        example=example,
        example_reading=example_reading,
        example_meaning=example_meaning,
        tier=tier,
    )


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def tmp_db(tmp_path):
    """Create a fresh temporary database."""
    db = Database(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def sample_corpus():
    """Twelve entries across three tiers; all but one carry an example."""
    return [
        make_entry("你好", "nǐ hǎo", "hello", "你好，我是学生。", "nǐ hǎo, wǒ shì xuésheng.", "Hello, I am a student.", 1),
        make_entry("学生", "xuésheng", "student", "我是学生。", "wǒ shì xuésheng.", "I am a student.", 1),
        make_entry("朋友", "péngyou", "friend", "他是我的朋友。", "tā shì wǒ de péngyou.", "He is my friend.", 1),
        make_entry("中国", "Zhōngguó", "China", "我爱中国。", "wǒ ài Zhōngguó.", "I love China.", 1),
        make_entry("猫", "māo", "cat", tier=1),
        make_entry("喜欢", "xǐhuan", "to like", "我喜欢喝茶。", "wǒ xǐhuan hē chá.", "I like drinking tea.", 2),
        make_entry("图书馆", "túshūguǎn", "library", "我们去图书馆吧。", "wǒmen qù túshūguǎn ba.", "Let's go to the library.", 2),
        make_entry("天气", "tiānqì", "weather", "今天天气很好。", "jīntiān tiānqì hěn hǎo.", "The weather is nice today.", 2),
        make_entry("电脑", "diànnǎo", "computer", "这是我的电脑。", "zhè shì wǒ de diànnǎo.", "This is my computer.", 3),
        make_entry("飞机", "fēijī", "airplane", "飞机很快。", "fēijī hěn kuài.", "Airplanes are fast.", 3),
        make_entry("苹果", "píngguǒ", "apple", "我吃苹果。", "wǒ chī píngguǒ.", "I eat an apple.", 3),
        make_entry("医生", "yīshēng", "doctor", "她是医生。", "tā shì yīshēng.", "She is a doctor.", 3),
    ]


@pytest.fixture
def entry_by_word(sample_corpus):
    return {e.word: e for e in sample_corpus}


@pytest.fixture
def populated_db(tmp_db, sample_corpus):
    """A database pre-loaded with the sample corpus."""
    tmp_db.import_entries(sample_corpus)
    return tmp_db


@pytest.fixture
def vocab_csv_content():
    """Minimal CSV in the current header format."""
    return """\
word,pinyin,meaning,example,example-pinyin,example-meaning
你好,nǐ hǎo,hello; hi,你好，我是学生。,"nǐ hǎo, wǒ shì xuésheng.","Hello, I am a student."
学生,xuésheng,student,我是学生。,wǒ shì xuésheng.,I am a student.
你好,nǐ hǎo,good day,,,
,māo,cat,,,
狗,gǒu,,,,
"""


@pytest.fixture
def legacy_csv_content():
    """Semicolon-separated CSV with the legacy localized headers."""
    return """\
Tiếng Trung;Phiên âm;Từ loại;Tiếng Việt;Ví dụ;Chú thích;Dịch
爱;ài;Động từ;yêu;我爱你。;wǒ ài nǐ.;Anh yêu em.
"""
