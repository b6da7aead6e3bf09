"""Pytest configuration and fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Callable

import httpx
import pytest
import pytest_asyncio

from adapters.billing_api import BillingApiResolver
from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.errors import ResolutionError, StorageError
from core.domain.models import BalanceData, EndpointRecord


class InMemorySiteStore:
    """SiteStore fake that records every save."""

    def __init__(self, records: list[EndpointRecord] | None = None, *, unreadable: bool = False) -> None:
        self.records = list(records or [])
        self.unreadable = unreadable
        self.fail_on_save = False
        self.saves: list[list[EndpointRecord]] = []

    def load(self) -> list[EndpointRecord]:
        if self.unreadable:
            raise StorageError("store is unreadable")
        return list(self.records)

    def save(self, records: list[EndpointRecord]) -> None:
        if self.fail_on_save:
            raise StorageError("disk full")
        self.saves.append(list(records))
        self.records = list(records)


class ScriptedResolver:
    """Resolver fake keyed by base URL: BalanceData to return or error to raise."""

    def __init__(self, outcomes: dict[str, BalanceData | ResolutionError]) -> None:
        self.outcomes = outcomes
        self.calls: list[tuple[str, str]] = []

    async def resolve(self, base_url: str, api_key: str) -> BalanceData:
        self.calls.append((base_url, api_key))
        outcome = self.outcomes[base_url]
        if isinstance(outcome, ResolutionError):
            raise outcome
        return outcome


class TickingClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        now = self.current
        self.current = now + timedelta(minutes=1)
        return now


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(http_timeout_seconds=2.0, verify_tls=False)


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def make_record() -> Callable[..., EndpointRecord]:
    def _make(
        site_id: str,
        *,
        name: str | None = None,
        url: str | None = None,
        api_key: str | None = None,
        **kwargs,
    ) -> EndpointRecord:
        return EndpointRecord(
            id=site_id,
            name=name or f"site-{site_id}",
            url=url or f"https://{site_id}.example.com",
            api_key=api_key or f"sk-{site_id}",
            **kwargs,
        )

    return _make


@pytest_asyncio.fixture
async def make_resolver(
    settings: AppSettings,
) -> AsyncIterator[Callable[..., tuple[BillingApiResolver, httpx.AsyncClient]]]:
    """Build resolvers whose client talks to an `httpx.MockTransport`.

    Every client handed out is closed at teardown.
    """

    clients: list[httpx.AsyncClient] = []

    def _make(handler, *, resolver_settings: AppSettings | None = None):
        effective = resolver_settings or settings
        client = build_async_client(effective, transport=httpx.MockTransport(handler))
        clients.append(client)
        return BillingApiResolver(effective, client=client), client

    yield _make

    for client in clients:
        await client.aclose()
