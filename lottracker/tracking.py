# lottracker/tracking.py
"""In-memory list of tracked lots.

Refreshes replace every extracted field but carry the user-owned ones
(`is_favorite`, `notes`) and `added_at` forward.
"""
import os
import re
import asyncio
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional
from .errors import DuplicateLotError, InvalidLotInputError, LotNotFoundError
from .schemas import Dashboard, DisplayedListing, Listing, RefreshSummary, TrackedListing
from .status import group_by_bucket
from .utils import logger, now as current_time, parse_iso, utc_iso

EXPIRY_DAYS = int(os.getenv("EXPIRY_DAYS", "5"))

LOT_URL_RE = re.compile(r"/lot/(\d+)", re.I)
LOT_NUMBER_RE = re.compile(r"^[A-Za-z0-9-]+$")

Fetch = Callable[[str], Awaitable[Listing]]


def parse_lot_number(text: str) -> str:
    """Accept a bare lot number or a lot page URL."""
    text = (text or "").strip()
    m = LOT_URL_RE.search(text)
    if m:
        return m.group(1)
    if LOT_NUMBER_RE.match(text):
        return text
    raise InvalidLotInputError(f"Not a lot number or lot URL: {text!r}")


def is_expired(listing: Listing, now: datetime, days: int = EXPIRY_DAYS) -> bool:
    sale_date = parse_iso(listing.sale_date)
    return sale_date is not None and sale_date < now - timedelta(days=days)


class TrackedLots:
    def __init__(self, fetch: Fetch, expiry_days: int = EXPIRY_DAYS,
                 clock: Callable[[], datetime] = current_time):
        self._fetch = fetch
        self.expiry_days = expiry_days
        self._clock = clock
        self._lots: List[TrackedListing] = []

    def __len__(self):
        return len(self._lots)

    def list(self) -> List[TrackedListing]:
        return list(self._lots)

    def get(self, lot_number: str) -> TrackedListing:
        for lot in self._lots:
            if lot.lot_number == lot_number:
                return lot
        raise LotNotFoundError(f"Lot {lot_number} is not tracked")

    def _index(self, lot_number: str) -> Optional[int]:
        for i, lot in enumerate(self._lots):
            if lot.lot_number == lot_number:
                return i
        return None

    async def add(self, text: str) -> TrackedListing:
        lot_number = parse_lot_number(text)
        if self._index(lot_number) is not None:
            raise DuplicateLotError(f"Lot {lot_number} is already tracked")
        listing = await self._fetch(lot_number)
        # the fetched record may carry a canonical number that is already tracked
        if self._index(listing.lot_number) is not None:
            raise DuplicateLotError(f"Lot {listing.lot_number} is already tracked")
        stamp = utc_iso(self._clock())
        tracked = TrackedListing(**listing.model_dump(), is_favorite=False, notes="",
                                 added_at=stamp, last_updated=stamp)
        self._lots.insert(0, tracked)
        logger.info("Tracking lot %s", tracked.lot_number)
        return tracked

    def merge(self, previous: TrackedListing, fresh: Listing) -> TrackedListing:
        return TrackedListing(
            **fresh.model_dump(),
            is_favorite=previous.is_favorite,
            notes=previous.notes,
            added_at=previous.added_at,
            last_updated=utc_iso(self._clock()),
        )

    def _store(self, previous: TrackedListing, fresh: Listing) -> Optional[TrackedListing]:
        i = self._index(previous.lot_number)
        if i is None:
            # removed while the fetch was in flight
            return None
        merged = self.merge(self._lots[i], fresh)
        self._lots[i] = merged
        return merged

    async def refresh(self, lot_number: str) -> TrackedListing:
        previous = self.get(lot_number)
        fresh = await self._fetch(lot_number)
        return self._store(previous, fresh) or previous

    async def refresh_all(self) -> RefreshSummary:
        """Refetch every lot concurrently; failed lots keep their previous record."""
        snapshot = self.list()

        async def _one(lot: TrackedListing):
            try:
                return lot, await self._fetch(lot.lot_number)
            except Exception as e:
                logger.warning("Error refreshing lot %s: %s", lot.lot_number, e)
                return lot, None

        results = await asyncio.gather(*(_one(lot) for lot in snapshot))
        summary = RefreshSummary()
        for previous, fresh in results:
            if fresh is None:
                summary.failed.append(previous.lot_number)
            elif self._store(previous, fresh) is not None:
                summary.refreshed.append(previous.lot_number)
        logger.info("Refreshed %d lots, %d failed", len(summary.refreshed), len(summary.failed))
        return summary

    def update(self, lot_number: str, is_favorite: Optional[bool] = None,
               notes: Optional[str] = None) -> TrackedListing:
        i = self._index(lot_number)
        if i is None:
            raise LotNotFoundError(f"Lot {lot_number} is not tracked")
        changes = {}
        if is_favorite is not None:
            changes["is_favorite"] = is_favorite
        if notes is not None:
            changes["notes"] = notes
        self._lots[i] = self._lots[i].model_copy(update=changes)
        return self._lots[i]

    def remove(self, lot_number: str) -> None:
        i = self._index(lot_number)
        if i is None:
            raise LotNotFoundError(f"Lot {lot_number} is not tracked")
        del self._lots[i]
        logger.info("Stopped tracking lot %s", lot_number)

    def purge_expired(self, now: Optional[datetime] = None) -> List[str]:
        now = now or self._clock()
        expired = [lot.lot_number for lot in self._lots if is_expired(lot, now, self.expiry_days)]
        if expired:
            self._lots = [lot for lot in self._lots if lot.lot_number not in expired]
            logger.info("Dropped %d expired lots", len(expired))
        return expired

    def dashboard(self, now: Optional[datetime] = None) -> Dashboard:
        """Current bucket of every lot, each bucket ordered by sale date."""
        now = now or self._clock()
        board = Dashboard()
        for bucket, placed in group_by_bucket(self._lots, now).items():
            getattr(board, bucket.value).extend(
                DisplayedListing(
                    **{**lot.model_dump(), "sale_status": placement.status,
                       "sale_status_description": placement.status.description},
                    bucket=bucket,
                )
                for lot, placement in placed
            )
        return board
