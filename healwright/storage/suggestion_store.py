"""Bounded, append-only history of healing attempts in a JSON file."""

from __future__ import annotations

import asyncio
import json
import pathlib

import structlog
from pydantic import TypeAdapter, ValidationError

from healwright.exceptions import StorageError
from healwright.models.domain import HealingStatistics, SuggestionRecord

logger = structlog.get_logger(__name__)

_RECORDS = TypeAdapter(list[SuggestionRecord])


class SuggestionStore:
    """Suggestion history kept as a JSON array, oldest entry first.

    Only the newest ``max_entries`` records are retained. A missing or
    unreadable file reads as an empty history.
    """

    def __init__(self, storage_file: str | pathlib.Path, max_entries: int = 100) -> None:
        self._path = pathlib.Path(storage_file).expanduser()
        self._max_entries = max_entries
        # Serializes read-modify-write cycles within this process
        self._lock = asyncio.Lock()

    @property
    def path(self) -> pathlib.Path:
        return self._path

    async def store_suggestion(self, record: SuggestionRecord) -> None:
        """Append a record, dropping the oldest beyond the cap."""
        async with self._lock:
            await asyncio.to_thread(self._append, record)
        logger.debug("suggestion_stored", path=str(self._path), success=record.result.success)

    async def load_suggestions(self) -> list[SuggestionRecord]:
        return await asyncio.to_thread(self._read)

    async def get_recent(self, limit: int = 10) -> list[SuggestionRecord]:
        """Newest records first."""
        records = await self.load_suggestions()
        return list(reversed(records))[: max(limit, 0)]

    async def get_successful_healings(self) -> list[SuggestionRecord]:
        return [r for r in await self.load_suggestions() if r.result.success and r.applied]

    async def get_statistics(self) -> HealingStatistics:
        records = await self.load_suggestions()
        successful = [r for r in records if r.result.success]
        scores = [r.result.score for r in successful if r.result.score]
        average = round(sum(scores) / len(scores), 2) if scores else 0.0
        return HealingStatistics(
            total=len(records),
            successful=len(successful),
            applied=sum(1 for r in records if r.applied),
            average_score=average,
        )

    async def clear(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write, [])
        logger.info("suggestions_cleared", path=str(self._path))

    def _append(self, record: SuggestionRecord) -> None:
        records = self._read()
        records.append(record)
        self._write(records[-self._max_entries :])

    def _read(self) -> list[SuggestionRecord]:
        if not self._path.exists():
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _RECORDS.validate_python(raw)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("suggestions_unreadable", path=str(self._path), error=str(e))
            return []

    def _write(self, records: list[SuggestionRecord]) -> None:
        payload = [r.model_dump(mode="json", by_alias=True) for r in records]
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            msg = f"Cannot write suggestions to {self._path}: {e}"
            raise StorageError(msg) from e
