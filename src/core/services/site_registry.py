"""Site registry: list/add/edit/remove sites and compute dashboard stats.

Each mutation is one `load()` followed by one `save()` on the store.
"""

from __future__ import annotations

from typing import Iterable

from core.domain.errors import SiteNotFoundError
from core.domain.models import EndpointRecord, SiteStats, SiteStatus
from core.interfaces.storage import SiteStore


def compute_stats(records: Iterable[EndpointRecord], *, low_balance_threshold: float = 10.0) -> SiteStats:
    stats = SiteStats()
    total_balance = 0.0
    for record in records:
        stats.total += 1
        if record.status is SiteStatus.ACTIVE:
            stats.active += 1
        if record.balance <= 0:
            stats.no_balance += 1
        elif record.balance < low_balance_threshold:
            stats.low_balance += 1
        total_balance += record.balance
    stats.total_balance = round(total_balance, 2)
    return stats


class SiteRegistry:
    def __init__(self, store: SiteStore) -> None:
        self._store = store

    def list_sites(self) -> list[EndpointRecord]:
        return self._store.load()

    def get_site(self, site_id: str) -> EndpointRecord:
        for record in self._store.load():
            if record.id == site_id:
                return record
        raise SiteNotFoundError(site_id)

    def add_site(
        self,
        *,
        name: str,
        url: str,
        api_key: str,
        balance: float = 0.0,
        status: SiteStatus = SiteStatus.ACTIVE,
    ) -> EndpointRecord:
        records = self._store.load()
        record = EndpointRecord(
            name=name.strip(),
            url=url.strip(),
            api_key=api_key.strip(),
            balance=balance,
            status=status,
        )
        # Ids por milisegundo pueden chocar si se agregan dos sitios seguidos.
        existing = {r.id for r in records}
        while record.id in existing:
            record = record.model_copy(update={"id": str(int(record.id) + 1)})
        records.append(record)
        self._store.save(records)
        return record

    def update_site(
        self,
        site_id: str,
        *,
        name: str | None = None,
        url: str | None = None,
        api_key: str | None = None,
        balance: float | None = None,
        status: SiteStatus | None = None,
    ) -> EndpointRecord:
        """Change the user-editable fields of a site.

        `None` leaves a field as it is. Resolved data (models, total limit,
        last check) and unknown JSON keys are kept.
        """

        changes: dict[str, object] = {}
        if name is not None:
            changes["name"] = name.strip()
        if url is not None:
            changes["url"] = url.strip()
        if api_key is not None:
            changes["api_key"] = api_key.strip()
        if balance is not None:
            changes["balance"] = balance
        if status is not None:
            changes["status"] = status

        records = self._store.load()
        for index, record in enumerate(records):
            if record.id == site_id:
                break
        else:
            raise SiteNotFoundError(site_id)
        if not changes:
            return record

        updated = EndpointRecord.model_validate({**record.model_dump(), **changes})
        records[index] = updated
        self._store.save(records)
        return updated

    def remove_site(self, site_id: str) -> EndpointRecord:
        records = self._store.load()
        kept = [r for r in records if r.id != site_id]
        if len(kept) == len(records):
            raise SiteNotFoundError(site_id)
        removed = next(r for r in records if r.id == site_id)
        self._store.save(kept)
        return removed

    def stats(self, *, low_balance_threshold: float = 10.0) -> SiteStats:
        return compute_stats(self._store.load(), low_balance_threshold=low_balance_threshold)
