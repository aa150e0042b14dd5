"""FastAPI application with all routes."""
from __future__ import annotations

import logging
from dataclasses import asdict

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

import httpx
from fastapi import FastAPI, HTTPException, Request

from vocab_drill.config import Settings, load_settings
from vocab_drill.corpus import CorpusService
from vocab_drill.db import Database
from vocab_drill.grading import (
    grade_arrangement,
    grade_choice,
    grade_completion,
    grade_matching,
)
from vocab_drill.models import (
    FillBlankQuestion,
    MatchingQuestion,
    MultipleChoiceQuestion,
    SentenceArrangementQuestion,
    SentenceCompletionQuestion,
    VocabEntry,
)
from vocab_drill.session import NoActiveQuizError, QuizSession, SessionState

app = FastAPI(title="Vocab Drill")

# Global state (initialized in startup)
_db: Database | None = None
_settings: Settings | None = None
_corpus: CorpusService | None = None
_session: QuizSession | None = None

_log = logging.getLogger("vocab_drill.app")


def get_db() -> Database:
    assert _db is not None
    return _db


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def get_corpus() -> CorpusService:
    assert _corpus is not None
    return _corpus


def get_session() -> QuizSession:
    global _session
    if _session is None:
        _session = QuizSession(get_settings())
    return _session


@app.on_event("startup")
async def startup():
    global _db, _settings, _corpus
    if _db is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()
    _db = Database(_settings.db_full_path)
    _corpus = CorpusService(_settings.resolved_corpus_sources(), db=_db)
    try:
        entries = await _corpus.load()
        _log.info("Corpus ready: %d entries", len(entries))
    except (httpx.HTTPError, OSError) as e:
        _log.warning("Corpus load failed: %s", e)


@app.on_event("shutdown")
async def shutdown():
    if _db:
        _db.close()


def _session_view(session: QuizSession) -> dict:
    question = session.current_question()
    answer = session.get_answer(question.id) if question else None
    return {
        "state": session.state.value,
        "quiz_id": session.quiz.id if session.quiz else None,
        "length": session.quiz.length if session.quiz else None,
        "current_index": session.current_index,
        "is_submitted": session.is_submitted,
        "progress": session.progress(),
        "question": asdict(question) if question else None,
        "answer": asdict(answer) if answer else None,
    }


def _require_active(session: QuizSession) -> None:
    if session.state is not SessionState.IN_PROGRESS:
        raise HTTPException(409, "No active quiz")


async def _load_corpus() -> list[VocabEntry]:
    try:
        return await get_corpus().load()
    except (httpx.HTTPError, OSError) as e:
        raise HTTPException(502, f"Corpus unavailable: {e}")


# ── API: Stats ────────────────────────────────────────────────────────────

@app.get("/api/stats")
async def api_stats():
    return get_db().get_stats()


# ── API: Corpus ───────────────────────────────────────────────────────────

@app.get("/api/corpus")
async def api_corpus():
    entries = await _load_corpus()
    return {
        "total": len(entries),
        "tiers": get_db().get_tier_counts(),
        "quiz_lengths": get_settings().quiz_lengths,
    }


@app.post("/api/corpus/reload")
async def api_corpus_reload():
    try:
        entries = await get_corpus().reload()
    except (httpx.HTTPError, OSError) as e:
        raise HTTPException(502, f"Corpus reload failed: {e}")
    return {"total": len(entries)}


# ── API: Quiz session ─────────────────────────────────────────────────────

@app.post("/api/quiz/start")
async def api_quiz_start(request: Request):
    body = await request.json() if await request.body() else {}
    length = body.get("length", "medium")
    question_type = body.get("question_type")

    corpus = await _load_corpus()
    if not corpus:
        raise HTTPException(400, "No vocabulary loaded. Import a corpus first.")
    session = get_session()
    try:
        quiz = session.start(corpus, length, question_type)
    except ValueError as e:
        raise HTTPException(400, str(e))
    if not quiz.questions:
        session.reset()
        raise HTTPException(400, "Could not generate any questions from this corpus.")
    return _session_view(session)


@app.get("/api/quiz")
async def api_quiz():
    return _session_view(get_session())


@app.post("/api/quiz/answer")
async def api_quiz_answer(request: Request):
    body = await request.json()
    session = get_session()
    _require_active(session)

    question = session.find_question(body.get("question_id", ""))
    if question is None:
        raise HTTPException(404, "Question not found")
    time_spent = int(body.get("time_spent", 0))

    try:
        if isinstance(question, (MultipleChoiceQuestion, FillBlankQuestion)):
            answer = grade_choice(question, body["option_id"], time_spent)
        elif isinstance(question, MatchingQuestion):
            answer = grade_matching(question, body["placements"], time_spent)
        elif isinstance(question, SentenceArrangementQuestion):
            answer = grade_arrangement(question, body["arranged_ids"], time_spent)
        elif isinstance(question, SentenceCompletionQuestion):
            answer = grade_completion(question, body["user_input"], time_spent)
        else:
            raise HTTPException(400, f"Unsupported question type: {question.type}")
    except KeyError as e:
        raise HTTPException(400, f"Missing field: {e.args[0]}")

    recorded = session.submit(answer)
    stored = session.get_answer(question.id)
    return {"recorded": recorded, "answer": asdict(stored)}


@app.post("/api/quiz/next")
async def api_quiz_next():
    session = get_session()
    _require_active(session)
    session.next()
    return _session_view(session)


@app.post("/api/quiz/previous")
async def api_quiz_previous():
    session = get_session()
    _require_active(session)
    session.previous()
    return _session_view(session)


@app.post("/api/quiz/goto")
async def api_quiz_goto(request: Request):
    body = await request.json()
    session = get_session()
    _require_active(session)
    session.go_to(int(body.get("index", 0)))
    return _session_view(session)


@app.post("/api/quiz/finish")
async def api_quiz_finish():
    session = get_session()
    try:
        result = await session.finish(get_db())
    except NoActiveQuizError as e:
        raise HTTPException(409, str(e))
    return asdict(result)


@app.post("/api/quiz/reset")
async def api_quiz_reset():
    session = get_session()
    session.reset()
    return _session_view(session)


# ── API: History and word stats ───────────────────────────────────────────

@app.get("/api/history")
async def api_history(limit: int = 20):
    return [asdict(h) for h in get_db().get_quiz_history(limit)]


@app.get("/api/words")
async def api_words():
    return [asdict(s) for s in get_db().get_all_word_stats()]
