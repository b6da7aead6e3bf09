"""Tests for batch polling and the balance check service."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from conftest import InMemorySiteStore, ScriptedResolver
from core.domain.errors import (
    NetworkError,
    RemoteRejectedError,
    ResolutionTimeoutError,
    SiteNotFoundError,
    StorageError,
)
from core.domain.models import BalanceData
from core.services.balance_poller import (
    BalanceCheckService,
    PollHooks,
    apply_balance,
    poll_all,
    resolve_one,
)

OLD_CHECK = datetime(2025, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def abc_records(make_record):
    return [
        make_record("a", balance=1.0, models=["old-a"], last_checked=OLD_CHECK),
        make_record("b", balance=2.0, total_limit=2.0, models=["old-b"], last_checked=OLD_CHECK),
        make_record("c", balance=3.0, models=[], last_checked=None),
    ]


@pytest.fixture
def abc_resolver():
    return ScriptedResolver(
        {
            "https://a.example.com": BalanceData(balance=10.0, total_limit=10.0, models=["gpt-4"]),
            "https://b.example.com": RemoteRejectedError("Invalid API key"),
            "https://c.example.com": BalanceData(balance=0.0, total_limit=0, models=[]),
        }
    )


class TestApplyBalance:
    def test_replaces_resolved_fields_as_a_group(self, make_record) -> None:
        record = make_record("x", balance=1.0, models=["m"], name="X")
        data = BalanceData(balance=4.2, total_limit=4.2, models=["a", "b"])
        checked = datetime(2026, 1, 1, tzinfo=timezone.utc)

        updated = apply_balance(record, data, checked)

        assert (updated.balance, updated.total_limit, updated.models, updated.last_checked) == (
            4.2,
            4.2,
            ["a", "b"],
            checked,
        )
        assert updated.name == "X"
        assert record.balance == 1.0
        assert record.models == ["m"]


class TestPollAll:
    @pytest.mark.asyncio
    async def test_partial_failure_keeps_order_and_continues(self, abc_records, abc_resolver, clock) -> None:
        result = await poll_all(abc_records, abc_resolver, clock=clock)

        assert [(e.id, e.success) for e in result.entries] == [("a", True), ("b", False), ("c", True)]
        assert result.success_count == 2
        assert result.failure_count == 1
        assert result.failures[0].error == "Invalid API key"
        assert [call[0] for call in abc_resolver.calls] == [
            "https://a.example.com",
            "https://b.example.com",
            "https://c.example.com",
        ]

    @pytest.mark.asyncio
    async def test_updates_successes_and_leaves_failures_untouched(self, abc_records, abc_resolver, clock) -> None:
        result = await poll_all(abc_records, abc_resolver, clock=clock)
        a, b, c = result.records

        assert a.balance == 10.0
        assert a.models == ["gpt-4"]
        assert a.last_checked is not None and a.last_checked != OLD_CHECK

        assert b == abc_records[1]
        assert b.balance == 2.0
        assert b.models == ["old-b"]
        assert b.last_checked == OLD_CHECK

        assert c.balance == 0.0
        assert c.total_limit == 0
        assert c.last_checked is not None

    @pytest.mark.asyncio
    async def test_input_records_are_not_mutated(self, abc_records, abc_resolver, clock) -> None:
        before = [r.model_copy(deep=True) for r in abc_records]

        await poll_all(abc_records, abc_resolver, clock=clock)

        assert abc_records == before

    @pytest.mark.asyncio
    async def test_success_entry_carries_balance_and_model_count(self, abc_records, abc_resolver, clock) -> None:
        result = await poll_all(abc_records, abc_resolver, clock=clock)
        entry = result.entries[0]

        assert entry.name == "site-a"
        assert entry.balance == 10.0
        assert entry.model_count == 1
        assert entry.error is None

    @pytest.mark.asyncio
    async def test_hooks_receive_start_and_each_entry(self, abc_records, abc_resolver, clock) -> None:
        started: list[int] = []
        seen: list[str] = []

        await poll_all(
            abc_records,
            abc_resolver,
            hooks=PollHooks(start=started.append, result=lambda e: seen.append(e.id)),
            clock=clock,
        )

        assert started == [3]
        assert seen == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_unencodable_api_key_fails_only_its_own_site(self, make_record, make_resolver, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/v1/models":
                return httpx.Response(200, json={"data": [{"id": "gpt-4"}]})
            return httpx.Response(200, json={"hard_limit_usd": 5})

        resolver, _ = make_resolver(handler)
        records = [make_record("a"), make_record("b", api_key="sk-abc…"), make_record("c")]

        result = await poll_all(records, resolver, clock=clock)

        assert [(e.id, e.success) for e in result.entries] == [("a", True), ("b", False), ("c", True)]
        assert result.failures[0].error.startswith("Request failed")
        assert result.records[1] == records[1]
        assert result.records[2].balance == 5.0

    @pytest.mark.asyncio
    async def test_empty_collection(self, abc_resolver) -> None:
        result = await poll_all([], abc_resolver)

        assert result.records == []
        assert result.entries == []


class TestResolveOne:
    @pytest.mark.asyncio
    async def test_failure_propagates(self, make_record) -> None:
        resolver = ScriptedResolver({"https://t.example.com": ResolutionTimeoutError(15)})

        with pytest.raises(ResolutionTimeoutError):
            await resolve_one(make_record("t"), resolver)


class TestBalanceCheckService:
    @pytest.mark.asyncio
    async def test_check_all_saves_once_with_full_collection(self, abc_records, abc_resolver, clock) -> None:
        store = InMemorySiteStore(abc_records)
        service = BalanceCheckService(store, abc_resolver, clock=clock)

        result = await service.check_all()

        assert len(store.saves) == 1
        assert store.saves[0] == result.records
        assert [r.id for r in store.records] == ["a", "b", "c"]
        assert store.records[1].balance == 2.0

    @pytest.mark.asyncio
    async def test_check_all_saves_even_when_everything_fails(self, make_record, clock) -> None:
        store = InMemorySiteStore([make_record("x")])
        resolver = ScriptedResolver({"https://x.example.com": NetworkError("refused")})

        result = await BalanceCheckService(store, resolver, clock=clock).check_all()

        assert result.failure_count == 1
        assert len(store.saves) == 1

    @pytest.mark.asyncio
    async def test_check_all_unreadable_store_is_empty_and_not_overwritten(self, abc_resolver) -> None:
        store = InMemorySiteStore(unreadable=True)

        result = await BalanceCheckService(store, abc_resolver).check_all()

        assert result.entries == []
        assert store.saves == []
        assert abc_resolver.calls == []

    @pytest.mark.asyncio
    async def test_check_all_save_failure_is_storage_error(self, abc_records, abc_resolver) -> None:
        store = InMemorySiteStore(abc_records)
        store.fail_on_save = True

        with pytest.raises(StorageError):
            await BalanceCheckService(store, abc_resolver).check_all()

    @pytest.mark.asyncio
    async def test_check_one_updates_record_and_saves_once(self, abc_records, abc_resolver, clock) -> None:
        store = InMemorySiteStore(abc_records)
        service = BalanceCheckService(store, abc_resolver, clock=clock)

        data = await service.check_one("a")

        assert data.balance == 10.0
        assert data.model_count == 1
        assert len(store.saves) == 1
        assert store.records[0].models == ["gpt-4"]
        assert store.records[1:] == abc_records[1:]

    @pytest.mark.asyncio
    async def test_check_one_is_idempotent_and_refreshes_last_checked(self, abc_records, abc_resolver, clock) -> None:
        store = InMemorySiteStore(abc_records)
        service = BalanceCheckService(store, abc_resolver, clock=clock)

        first = await service.check_one("a")
        first_checked = store.records[0].last_checked
        second = await service.check_one("a")
        second_checked = store.records[0].last_checked

        assert first == second
        assert first_checked is not None and second_checked is not None
        assert second_checked > first_checked
        assert len(store.saves) == 2

    @pytest.mark.asyncio
    async def test_check_one_failure_leaves_store_untouched(self, abc_records, abc_resolver) -> None:
        store = InMemorySiteStore(abc_records)

        with pytest.raises(RemoteRejectedError):
            await BalanceCheckService(store, abc_resolver).check_one("b")

        assert store.saves == []
        assert store.records[1].balance == 2.0
        assert store.records[1].models == ["old-b"]
        assert store.records[1].last_checked == OLD_CHECK

    @pytest.mark.asyncio
    async def test_check_one_unknown_site(self, abc_records, abc_resolver) -> None:
        store = InMemorySiteStore(abc_records)

        with pytest.raises(SiteNotFoundError):
            await BalanceCheckService(store, abc_resolver).check_one("zzz")

        assert abc_resolver.calls == []

    @pytest.mark.asyncio
    async def test_check_one_save_failure_is_not_a_resolution_error(self, abc_records, abc_resolver) -> None:
        store = InMemorySiteStore(abc_records)
        store.fail_on_save = True

        with pytest.raises(StorageError):
            await BalanceCheckService(store, abc_resolver).check_one("a")
