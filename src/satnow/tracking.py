"""The live tracking view.

Joins the catalog's element records with freshly computed bearings and keeps
them sorted by range, closest first. The record set is read from the catalog
once; ``refresh()`` recomputes bearings for a new instant and re-sorts
without touching the catalog again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional, Sequence

from .catalog import CatalogStore
from .elements import ElementRecord
from .errors import PropagationError
from .propagation import Bearing, Observer, PropagationService

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class TrackingEntry:
    """An element record and its bearing at the view's current instant."""

    record: ElementRecord
    bearing: Bearing

    @property
    def catalog_id(self) -> int:
        return self.record.catalog_id


class TrackingView:
    """Range-sorted bearings for a fixed set of records.

    Args:
        observer: Ground position the bearings are computed from.
        records: The records to track. Kept for the life of the view.
        propagator: Service that turns a record into a bearing.
        clock: Returns the current instant; called once per refresh.

    Every entry in the view shares the same timestamp. Records whose bearing
    cannot be computed are left out of that refresh's entries and tried again
    on the next one. Entries with equal range keep the order of ``records``.
    """

    def __init__(
        self,
        observer: Observer,
        records: Sequence[ElementRecord],
        propagator: PropagationService,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.observer = observer
        self.records = list(records)
        self.propagator = propagator
        self.clock = clock
        self.timestamp: Optional[datetime] = None
        self.entries: list[TrackingEntry] = []

    @classmethod
    def build(
        cls,
        observer: Observer,
        store: CatalogStore,
        propagator: PropagationService,
        clock: Callable[[], datetime] = utc_now,
    ) -> TrackingView:
        """Read every record from ``store`` and compute the first snapshot."""
        records = store.fetch_all()
        logger.debug(f"Tracking {len(records)} cataloged records")
        view = cls(observer, records, propagator, clock)
        view.refresh()
        return view

    def refresh(self) -> list[TrackingEntry]:
        """Recompute every bearing at a new instant and re-sort by range."""
        when = self.clock()
        entries = []
        for record in self.records:
            try:
                bearing = self.propagator.bearing(record, self.observer, when)
            except (PropagationError, ValueError) as e:
                logger.warning(f"Skipping {record.name or record.line1[:7]}: {e}")
                continue
            entries.append(TrackingEntry(record, bearing))

        # list.sort is stable, so equal ranges keep record order
        entries.sort(key=lambda e: e.bearing.range)
        self.timestamp = when
        self.entries = entries
        return entries

    def find(self, catalog_id: int) -> Optional[int]:
        """Index of the entry for ``catalog_id``, or None."""
        for i, entry in enumerate(self.entries):
            if _catalog_id_or_none(entry.record) == catalog_id:
                return i
        return None

    def bearing_for(self, catalog_id: int) -> Optional[Bearing]:
        i = self.find(catalog_id)
        return None if i is None else self.entries[i].bearing

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[TrackingEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> TrackingEntry:
        return self.entries[index]


def _catalog_id_or_none(record: ElementRecord) -> Optional[int]:
    try:
        return record.catalog_id
    except ValueError:
        return None
