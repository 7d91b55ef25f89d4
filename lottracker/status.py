# lottracker/status.py
"""Sale status derivation.

`classify` runs once at extraction time from the signals found in the fetched
document. `bucket` re-derives the displayed status from the stored sale date
and status whenever lots are shown, because the bucket a lot belongs to
depends on the current time.

Both are ordered rule tables: the first rule that applies wins.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

from .schemas import Bucket, Listing, SaleStatus
from .utils import parse_iso

RECENT_SALE_WINDOW = timedelta(days=5)
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

FUTURE_CODES = frozenset({0, 1})
SCHEDULED_CODES = frozenset({2, 3})


@dataclass(frozen=True)
class StatusSignals:
    """Everything the classifier looks at for one lot.

    `auction_date` comes from the human-formatted date on the page,
    `sale_date` from the embedded lot data.
    """

    explicit_sold: bool = False
    explicit_future: bool = False
    explicit_upcoming: bool = False
    auction_date: Optional[datetime] = None
    status_code: Optional[int] = None
    sale_date: Optional[datetime] = None


class Rule(NamedTuple):
    name: str
    applies: Callable[[StatusSignals, datetime], bool]
    status: SaleStatus


def same_day(moment: datetime, now: datetime) -> bool:
    """True when both fall on the same calendar day as seen from `now`'s zone."""
    if moment.tzinfo is not None and now.tzinfo is not None:
        moment = moment.astimezone(now.tzinfo)
    return moment.date() == now.date()


CLASSIFICATION_RULES: Tuple[Rule, ...] = (
    Rule("sold marker", lambda s, now: s.explicit_sold, SaleStatus.SOLD),
    Rule(
        "auction date passed",
        lambda s, now: s.auction_date is not None and s.auction_date < now,
        SaleStatus.SOLD,
    ),
    Rule(
        "auction today",
        lambda s, now: s.auction_date is not None and same_day(s.auction_date, now),
        SaleStatus.NOW_PLAYING,
    ),
    Rule("auction scheduled", lambda s, now: s.auction_date is not None, SaleStatus.SOON_PLAYING),
    Rule("upcoming marker", lambda s, now: s.explicit_upcoming, SaleStatus.UPCOMING),
    Rule(
        "future marker with sale date",
        lambda s, now: s.explicit_future and s.sale_date is not None,
        SaleStatus.SOON_PLAYING,
    ),
    Rule("future marker", lambda s, now: s.explicit_future, SaleStatus.FUTURE),
)


def classify(signals: StatusSignals, now: datetime) -> SaleStatus:
    for rule in CLASSIFICATION_RULES:
        if rule.applies(signals, now):
            return rule.status
    return status_from_code(signals.status_code, signals.sale_date, now)


def status_from_code(status_code: Optional[int], sale_date: Optional[datetime], now: datetime) -> SaleStatus:
    """Fallback when the page carries no explicit signal."""
    if sale_date is None:
        return SaleStatus.FUTURE
    if now < sale_date:
        if status_code in SCHEDULED_CODES:
            return SaleStatus.UPCOMING
        if status_code in FUTURE_CODES:
            return SaleStatus.FUTURE
        return SaleStatus.UPCOMING
    if sale_date > now - RECENT_SALE_WINDOW:
        return SaleStatus.SOLD_RECENTLY
    return SaleStatus.SOLD


class Placement(NamedTuple):
    status: SaleStatus
    bucket: Bucket


class PlacementRule(NamedTuple):
    name: str
    applies: Callable[[SaleStatus, Optional[datetime], datetime], bool]
    # None keeps the stored status
    status: Optional[SaleStatus]
    bucket: Bucket


PLACEMENT_RULES: Tuple[PlacementRule, ...] = (
    PlacementRule(
        "sold or sale passed",
        lambda status, date, now: status is SaleStatus.SOLD or (date is not None and date < now),
        SaleStatus.SOLD,
        Bucket.RECENT,
    ),
    PlacementRule(
        "sale today",
        lambda status, date, now: date is not None and same_day(date, now),
        SaleStatus.NOW_PLAYING,
        Bucket.SOON,
    ),
    PlacementRule(
        "sale ahead",
        lambda status, date, now: date is not None and date > now,
        SaleStatus.FUTURE,
        Bucket.FUTURE,
    ),
    PlacementRule(
        "playing without date",
        lambda status, date, now: status is SaleStatus.NOW_PLAYING,
        None,
        Bucket.SOON,
    ),
)


def place(status: SaleStatus, sale_date: Optional[datetime], now: datetime) -> Placement:
    for rule in PLACEMENT_RULES:
        if rule.applies(status, sale_date, now):
            return Placement(rule.status or status, rule.bucket)
    return Placement(status, Bucket.FUTURE)


def bucket(listing: Listing, now: datetime) -> Placement:
    """Displayed status and bucket of `listing` at `now`."""
    return place(listing.sale_status, parse_iso(listing.sale_date), now)


def sale_date_key(listing: Listing) -> datetime:
    return parse_iso(listing.sale_date) or EPOCH


def group_by_bucket(listings: Iterable[Listing], now: datetime) -> Dict[Bucket, List[Tuple[Listing, Placement]]]:
    """Place every listing and order each bucket by ascending sale date."""
    groups: Dict[Bucket, List[Tuple[Listing, Placement]]] = {b: [] for b in Bucket}
    for listing in sorted(listings, key=sale_date_key):
        placement = bucket(listing, now)
        groups[placement.bucket].append((listing, placement))
    return groups
