"""CLI entry point for vocab-drill.

Usage:
  python -m vocab_drill serve [--port PORT] [--host HOST]
  python -m vocab_drill stop
  python -m vocab_drill restart [--port PORT] [--host HOST]
  python -m vocab_drill status
  python -m vocab_drill import
  python -m vocab_drill preview [--length LENGTH] [--type TYPE] [--seed N]
  python -m vocab_drill stats
"""
from __future__ import annotations

import asyncio
import os
import signal
import sys
import time
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".server.pid"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8765


def parse_flags(args: list[str]) -> dict[str, str]:
    """``--name value`` pairs keyed by name; a flag with no value is dropped."""
    flags = {}
    for name, value in zip(args, args[1:]):
        if name.startswith("--") and not value.startswith("--"):
            flags[name[2:]] = value
    return flags


# ── Server process ────────────────────────────────────────────────────────

def _alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except (ProcessLookupError, PermissionError):
        return False
    return True


def server_pid() -> int | None:
    """PID of the running server. A stale or garbled PID file is removed."""
    try:
        text = PID_FILE.read_text().strip()
    except FileNotFoundError:
        return None
    if text.isdigit() and _alive(int(text)):
        return int(text)
    PID_FILE.unlink(missing_ok=True)
    return None


def stop_server(wait: float = 0.0) -> int | None:
    """Send SIGTERM to the running server and return its PID, or ``None``
    when nothing was running. Waits up to *wait* seconds for it to exit."""
    pid = server_pid()
    if pid is None:
        return None
    try:
        os.kill(pid, signal.SIGTERM)
    except ProcessLookupError:
        PID_FILE.unlink(missing_ok=True)
        return None
    deadline = time.monotonic() + wait
    while _alive(pid) and time.monotonic() < deadline:
        time.sleep(0.1)
    PID_FILE.unlink(missing_ok=True)
    return pid


# ── Commands ──────────────────────────────────────────────────────────────

def cmd_serve(args: list[str]):
    import uvicorn

    existing = server_pid()
    if existing is not None:
        print(f"Server already running (PID {existing}). Use 'restart' or 'stop' first.")
        sys.exit(1)

    flags = parse_flags(args)
    host = flags.get("host", DEFAULT_HOST)
    port = int(flags.get("port", DEFAULT_PORT))
    PID_FILE.write_text(str(os.getpid()))

    print(f"Starting Vocab Drill on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    try:
        uvicorn.run("vocab_drill.app:app", host=host, port=port, timeout_graceful_shutdown=5)
    finally:
        PID_FILE.unlink(missing_ok=True)


def cmd_stop(args: list[str]):
    pid = stop_server()
    print(f"Stopped server (PID {pid})." if pid else "Server is not running.")


def cmd_restart(args: list[str]):
    pid = stop_server(wait=5.0)
    if pid:
        print(f"Stopped server (PID {pid}).")
    cmd_serve(args)


def cmd_status(args: list[str]):
    pid = server_pid()
    print(f"Server is running (PID {pid})." if pid else "Server is not running.")


def cmd_import(args: list[str]):
    from vocab_drill.config import load_settings
    from vocab_drill.corpus import CorpusService
    from vocab_drill.db import Database

    settings = load_settings()
    sources = settings.resolved_corpus_sources()
    if not sources:
        print(f"No corpus sources configured and no CSV files in {settings.data_dir}")
        sys.exit(1)

    db = Database(settings.db_full_path)
    for src in sources:
        print(f"  Source: {src.get('url') or src.get('path')} (tier {src.get('tier') or '-'})")
    entries = asyncio.run(CorpusService(sources, db=db).reload())
    print(f"\nTotal in DB: {db.get_vocabulary_count()} entries ({len(entries)} imported)")
    db.close()


def cmd_preview(args: list[str]):
    import random

    from vocab_drill.composer import compose_quiz
    from vocab_drill.config import load_settings
    from vocab_drill.db import Database

    settings = load_settings()
    db = Database(settings.db_full_path)
    corpus = db.get_all_entries()
    db.close()
    if not corpus:
        print("No vocabulary in database. Run 'import' first.")
        sys.exit(1)

    flags = parse_flags(args)
    length = flags.get("length", "short")
    seed = flags.get("seed")
    rng = random.Random(int(seed)) if seed is not None else random.Random()

    try:
        quiz = compose_quiz(corpus, length, settings, flags.get("type"), rng=rng)
    except ValueError as e:
        print(e)
        sys.exit(1)

    print(f"Quiz {quiz.id} ({length}): {len(quiz.questions)} questions")
    for i, q in enumerate(quiz.questions, 1):
        print(f"  {i:2d}. {q.type:21s} {summarize(q)}")


def summarize(question) -> str:
    """One-line text rendering of a question for the terminal."""
    from vocab_drill.models import (
        FillBlankQuestion,
        MatchingQuestion,
        MultipleChoiceQuestion,
        SentenceArrangementQuestion,
    )

    if isinstance(question, MultipleChoiceQuestion):
        return f"[{question.variant}] {question.prompt}"
    if isinstance(question, MatchingQuestion):
        return ", ".join(i.word for i in question.items)
    if isinstance(question, FillBlankQuestion):
        s = question.sentence
        p = question.blank_position
        return s[:p] + "___" + s[p + question.blank_length:]
    if isinstance(question, SentenceArrangementQuestion):
        return " / ".join(t.text for t in question.shuffled_tokens)
    return f"{question.before_blank}___{question.after_blank} ({question.blank_reading})"


def cmd_stats(args: list[str]):
    from vocab_drill.config import load_settings
    from vocab_drill.db import Database

    db = Database(load_settings().db_full_path)
    stats = db.get_stats()
    db.close()

    rows = [
        ("Total words", stats["total_words"]),
        ("Words practiced", stats["words_practiced"]),
        ("Words new", stats["words_new"]),
        ("Quizzes completed", stats["total_quizzes"]),
        ("Average score", f"{stats['average_quiz_score']}%"),
        ("Average progress", stats["average_progress_score"]),
        ("Answers given", stats["total_answers"]),
        ("Overall accuracy", f"{stats['accuracy']}%"),
    ]
    print("Vocab Drill Stats")
    print("=" * 40)
    for label, value in rows:
        print(f"{label + ':':20s}{value}")


COMMANDS = {
    "serve": cmd_serve,
    "stop": cmd_stop,
    "restart": cmd_restart,
    "status": cmd_status,
    "import": cmd_import,
    "preview": cmd_preview,
    "stats": cmd_stats,
}


def main(argv: list[str] | None = None):
    args = sys.argv[1:] if argv is None else argv
    command = args[0] if args else "serve"
    handler = COMMANDS.get(command)
    if handler is None:
        print(f"Unknown command: {command}")
        print(f"Commands: {', '.join(COMMANDS)}")
        sys.exit(1)
    handler(args[1:])


if __name__ == "__main__":
    main()
