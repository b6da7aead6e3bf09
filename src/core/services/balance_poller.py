"""Balance polling orchestration.

This module drives the resolver over stored site records. Resolution is
strictly sequential: one site (billing call, then models call) finishes
before the next one starts, so at most one outbound connection is open.

The orchestrator never mutates the records it receives; it builds a new
collection with the updated copies, in input order, and leaves persistence
to `BalanceCheckService`, which writes the whole collection exactly once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Sequence

from core.domain.errors import ResolutionError, SiteNotFoundError, StorageError
from core.domain.models import BalanceData, BatchResultEntry, EndpointRecord, utcnow
from core.interfaces.resolver import BalanceResolver
from core.interfaces.storage import SiteStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass
class PollHooks:
    """Optional callbacks for UI layers (progress)."""

    start: Callable[[int], None] | None = None
    result: Callable[[BatchResultEntry], None] | None = None


@dataclass
class PollResult:
    """Output of a batch poll."""

    records: list[EndpointRecord]
    entries: list[BatchResultEntry] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for entry in self.entries if entry.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for entry in self.entries if not entry.success)

    @property
    def failures(self) -> list[BatchResultEntry]:
        return [entry for entry in self.entries if not entry.success]


def apply_balance(record: EndpointRecord, data: BalanceData, checked_at: datetime) -> EndpointRecord:
    """Return a copy of `record` with the resolved fields replaced as a group."""

    return record.model_copy(
        update={
            "balance": data.balance,
            "total_limit": data.total_limit,
            "models": list(data.models),
            "last_checked": checked_at,
        }
    )


async def resolve_one(
    record: EndpointRecord,
    resolver: BalanceResolver,
    *,
    clock: Clock = utcnow,
) -> tuple[EndpointRecord, BalanceData]:
    """Resolve a single record.

    Raises `ResolutionError` on failure; the caller keeps the original record.
    """

    data = await resolver.resolve(record.url, record.api_key)
    return apply_balance(record, data, clock()), data


async def poll_all(
    records: Sequence[EndpointRecord],
    resolver: BalanceResolver,
    *,
    hooks: PollHooks | None = None,
    clock: Clock = utcnow,
) -> PollResult:
    """Resolve every record in order without aborting on individual failures."""

    hooks = hooks or PollHooks()
    if hooks.start:
        hooks.start(len(records))

    updated: list[EndpointRecord] = []
    entries: list[BatchResultEntry] = []

    for record in records:
        try:
            new_record, data = await resolve_one(record, resolver, clock=clock)
        except ResolutionError as exc:
            logger.warning("Balance check failed for %s (%s): %s", record.name, record.id, exc.message)
            updated.append(record)
            entry = BatchResultEntry.failed(record, exc.message)
        else:
            updated.append(new_record)
            entry = BatchResultEntry.succeeded(record, data)

        entries.append(entry)
        if hooks.result:
            hooks.result(entry)

    result = PollResult(records=updated, entries=entries)
    logger.info(
        "Batch poll finished: %d succeeded, %d failed",
        result.success_count,
        result.failure_count,
    )
    return result


class BalanceCheckService:
    """Binds polling to the site store: load, resolve, save once."""

    def __init__(
        self,
        store: SiteStore,
        resolver: BalanceResolver,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._clock = clock

    def _load(self) -> tuple[list[EndpointRecord], bool]:
        """Load records; an unreadable store counts as empty (and not writable back)."""

        try:
            return self._store.load(), True
        except StorageError as exc:
            logger.warning("Site store unreadable, treating as empty: %s", exc)
            return [], False

    async def check_one(self, site_id: str) -> BalanceData:
        records, _ = self._load()
        for index, record in enumerate(records):
            if record.id == site_id:
                break
        else:
            raise SiteNotFoundError(site_id)

        new_record, data = await resolve_one(record, self._resolver, clock=self._clock)
        records = [*records[:index], new_record, *records[index + 1 :]]
        self._store.save(records)
        return data

    async def check_all(self, hooks: PollHooks | None = None) -> PollResult:
        records, loaded = self._load()
        result = await poll_all(records, self._resolver, hooks=hooks, clock=self._clock)
        if loaded:
            self._store.save(result.records)
        return result
