"""Load and cache the vocabulary corpus.

Concurrent ``load()`` callers share a single in-flight task; the resolved
corpus is cached until ``invalidate()`` or ``reload()``. A reload never
joins a load that was already running; it waits for it and fetches again.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from vocab_drill.models import VocabEntry
from vocab_drill.parsers.vocabulary_parser import parse_vocabulary_text

if TYPE_CHECKING:
    from vocab_drill.db import Database

_log = logging.getLogger("vocab_drill.corpus")


async def fetch_source(source: dict) -> str:
    """Raw CSV text of a ``{"path": ...}`` or ``{"url": ...}`` source."""
    if "url" in source:
        async with httpx.AsyncClient(timeout=30.0) as client:
            resp = await client.get(source["url"])
            resp.raise_for_status()
            return resp.text
    return await asyncio.to_thread(Path(source["path"]).read_text, encoding="utf-8")


class CorpusService:
    def __init__(
        self,
        sources: list[dict],
        db: Database | None = None,
        fetch: Callable[[dict], Awaitable[str]] | None = None,
    ):
        self.sources = sources
        self.db = db
        self._fetch = fetch or fetch_source
        self._cache: list[VocabEntry] | None = None
        self._generation = 0
        self._pending: asyncio.Task | None = None
        # (generation, prefer_db) of the pending task
        self._pending_key: tuple[int, bool] = (0, True)

    @property
    def cached(self) -> list[VocabEntry] | None:
        return self._cache

    async def load(self) -> list[VocabEntry]:
        if self._cache is not None:
            return self._cache
        return await self._join(prefer_db=True)

    async def reload(self) -> list[VocabEntry]:
        """Re-fetch every source, bypassing the cache and the database.

        A load already in flight is left to finish, but its result is not
        returned here and never reaches the cache.
        """
        self.invalidate()
        return await self._join(prefer_db=False)

    def invalidate(self) -> None:
        """Drop the cache; tasks started before this call cannot refill it."""
        self._cache = None
        self._generation += 1

    async def _join(self, prefer_db: bool) -> list[VocabEntry]:
        while self._pending is not None and not self._can_join(prefer_db):
            await self._settle(self._pending)
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._resolve(prefer_db, self._generation))
            self._pending_key = (self._generation, prefer_db)
            self._pending.add_done_callback(self._clear_pending)
        return await asyncio.shield(self._pending)

    def _can_join(self, prefer_db: bool) -> bool:
        generation, pending_prefers_db = self._pending_key
        # A load may ride along with a reload, never the other way round
        return generation == self._generation and (prefer_db or not pending_prefers_db)

    @staticmethod
    async def _settle(task: asyncio.Task) -> None:
        try:
            await asyncio.shield(task)
        except Exception as e:
            _log.info("Superseded corpus load failed: %s", e)

    def _clear_pending(self, task: asyncio.Task) -> None:
        if self._pending is task:
            self._pending = None

    async def _resolve(self, prefer_db: bool, generation: int) -> list[VocabEntry]:
        if prefer_db and self.db is not None and self.db.get_vocabulary_count() > 0:
            entries = self.db.get_all_entries()
            _log.info("Loaded %d entries from database", len(entries))
        else:
            entries = await self._fetch_all()
            if self.db is not None:
                self.db.clear_vocabulary()
                self.db.import_entries(entries)
        if generation == self._generation:
            self._cache = entries
        else:
            _log.info("Corpus invalidated while loading; not caching %d entries", len(entries))
        return entries

    async def _fetch_all(self) -> list[VocabEntry]:
        texts = await asyncio.gather(*(self._fetch(src) for src in self.sources))
        merged: dict[str, VocabEntry] = {}
        for src, text in zip(self.sources, texts):
            entries = parse_vocabulary_text(text, src.get("tier"))
            _log.info("Parsed %d entries from %s", len(entries), src.get("url") or src.get("path"))
            for entry in entries:
                # Later sources win on duplicate ids
                merged[entry.id] = entry
        return list(merged.values())
