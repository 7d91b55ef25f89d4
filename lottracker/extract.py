# lottracker/extract.py
"""Turn a fetched lot page, or a lot-details API payload, into a `Listing`.

Extraction is all-or-nothing: any failure returns None and is logged, no
exception reaches the caller.
"""
import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from bs4 import BeautifulSoup
from pydantic import ValidationError
from .schemas import Listing, SaleStatus
from .status import StatusSignals, classify
from .utils import LOT_TIMEZONE, logger, now as current_time, utc_iso, parse_iso

# try to detect available parser; prefer lxml if installed
try:
    import lxml  # type: ignore  # noqa: F401
    _bs_parser = "lxml"
except Exception:
    _bs_parser = "html.parser"

RawDocument = Union[str, Mapping[str, Any]]

EMBED_MARKER = "cachedSolrLotDetailsStr"
EMBED_RE = re.compile(EMBED_MARKER + r':\s*"({.+?})"')
# "Wed. Jul 30, 2025 10:00 AM EDT"
AUCTION_DATE_RE = re.compile(r"([A-Za-z]+)\.?\s+([A-Za-z]+)\s+(\d+),\s*(\d+)\s+(\d+:\d+)\s*([AP]M)")

FUTURE_LINK_SELECTOR = 'a[data-uname="lotdetailFuturelink"]'
AUCTION_DATE_SELECTOR = 'span[data-uname="lotdetailSaleinformationsaledatevalue"]'

IMAGE_HOST = "https://cs.copart.com/v1/AUTH_svc.pdoc00001"
THUMBNAIL_SUFFIX, FULL_SUFFIX = "_thb.", "_ful."

API_STATUS_MAP = {
    "UPCOMING": SaleStatus.FUTURE,
    "PENDING": SaleStatus.UPCOMING,
    "LIVE": SaleStatus.NOW_PLAYING,
    "SOLD": SaleStatus.SOLD,
    "CLOSED": SaleStatus.SOLD,
    "PROCESSING": SaleStatus.UPCOMING,
}


def extract(raw: RawDocument, now: Optional[datetime] = None) -> Optional[Listing]:
    """Extract a listing from an HTML page or an API payload (dict or JSON text)."""
    now = now or current_time()
    try:
        if isinstance(raw, Mapping):
            return extract_api_payload(raw)
        if raw.lstrip().startswith("{"):
            try:
                payload = json.loads(raw)
            except ValueError:
                logger.warning("Lot payload looked like JSON but did not parse")
                return None
            if not isinstance(payload, Mapping):
                return None
            return extract_api_payload(payload)
        return extract_html(raw, now)
    except Exception as e:
        logger.exception("Unexpected error extracting lot data: %s", e)
        return None


# --- HTML page ---

def extract_html(html: str, now: datetime) -> Optional[Listing]:
    soup = BeautifulSoup(html, _bs_parser)
    lot = embedded_lot_data(soup)
    if lot is None:
        return None

    tz = _zone(lot.get("ianaTimeZone"))
    sale_date = _timestamp(lot.get("ad"), tz)
    auction_date = None
    date_el = soup.select_one(AUCTION_DATE_SELECTOR)
    if date_el is not None:
        auction_date = parse_auction_date(date_el.get_text(" ", strip=True), tz)

    signals = StatusSignals(
        explicit_sold=_has_exact_text(soup, ["span", "div"], "Sold"),
        explicit_future=any(a.get_text().strip() == "Future" for a in soup.select(FUTURE_LINK_SELECTOR)),
        explicit_upcoming=_has_exact_text(soup, ["a"], "Upcoming lot"),
        auction_date=auction_date,
        status_code=_int(lot.get("ss")),
        sale_date=sale_date,
    )
    status = classify(signals, now)
    best_date = sale_date or auction_date
    odometer = None
    reading_type = lot.get("ord")
    if isinstance(reading_type, str) and reading_type.strip() and lot.get("orr"):
        odometer = {"value": lot.get("orr"), "unit": "mi" if reading_type == "ACTUAL" else "km"}

    fields = {
        "lot_number": lot.get("lotNumberStr") or _str(lot.get("ln")),
        "title": lot.get("ld"),
        "year": lot.get("lcy"),
        "make": lot.get("mkn"),
        "model": lot.get("lm") or lot.get("mmod"),
        "vin": lot.get("fv"),
        "odometer": odometer,
        "primary_damage": lot.get("dd"),
        "secondary_damage": lot.get("sdd"),
        "title_status": lot.get("tgd"),
        "title_type": lot.get("td"),
        "vehicle_type": lot.get("vehTypDesc"),
        "drive": lot.get("drv"),
        "fuel_type": lot.get("ft"),
        "transmission": lot.get("tmtp"),
        "color": lot.get("clr"),
        "image_url": lot.get("tims"),
        "location": lot.get("yn"),
        "current_bid": lot.get("hb"),
        "buy_it_now": lot.get("myb"),
        "keys": lot.get("hk") == "YES",
        "start_code": lot.get("lcd"),
        "highlights": lot.get("lfd"),
        "sale_date": None if status is SaleStatus.FUTURE or best_date is None else utc_iso(best_date),
        "sale_time": lot.get("at"),
        "time_zone": lot.get("ianaTimeZone"),
        "sale_status": status,
    }
    return canonical_listing(fields)


def embedded_lot_data(soup: BeautifulSoup) -> Optional[Dict[str, Any]]:
    """Decode the lot-details object embedded in an inline script."""
    script_text = None
    for script in soup.find_all("script"):
        text = script.string or script.get_text()
        if EMBED_MARKER in text:
            script_text = text
            break
    if script_text is None:
        logger.warning("Lot data marker not found; page shape changed or request was blocked")
        return None

    match = EMBED_RE.search(script_text)
    if not match:
        logger.warning("Lot data marker found but no embedded object followed it")
        return None
    payload = match.group(1).replace('\\"', '"').replace("\\\\", "\\")
    try:
        data = json.loads(payload)
    except ValueError as e:
        logger.warning("Embedded lot data is not valid JSON: %s", e)
        return None
    if not isinstance(data, dict):
        logger.warning("Embedded lot data is not an object")
        return None
    return data


def parse_auction_date(text: str, tz: Optional[ZoneInfo] = None) -> Optional[datetime]:
    """Parse "Wed. Jul 30, 2025 10:00 AM" style text; the zone suffix is ignored."""
    m = AUCTION_DATE_RE.search(text or "")
    if not m:
        return None
    _, month, day, year, clock, meridiem = m.groups()
    try:
        parsed = datetime.strptime(f"{month[:3]} {day} {year} {clock} {meridiem}", "%b %d %Y %I:%M %p")
    except ValueError:
        logger.debug("Unparsable auction date %r", text)
        return None
    return parsed.replace(tzinfo=tz or _zone(None))


def _has_exact_text(soup: BeautifulSoup, tags, text: str) -> bool:
    return any(el.get_text().strip() == text for el in soup.find_all(tags))


# --- lot details API ---

def extract_api_payload(payload: Mapping[str, Any]) -> Optional[Listing]:
    data = payload.get("data")
    details = data.get("lotDetails") if isinstance(data, Mapping) else None
    if not isinstance(details, Mapping) or not isinstance(details.get("ld"), Mapping):
        logger.warning("Lot details payload is missing data.lotDetails.ld")
        return None
    ld = details["ld"]

    odometer = None
    if _str(ld.get("orr")) and ld.get("oru"):
        odometer = {"value": ld.get("orr"), "unit": "mi" if ld.get("oru") == "M" else "km"}

    thumb = ld.get("thumb")
    if thumb and not str(thumb).startswith("http"):
        thumb = IMAGE_HOST + str(thumb)

    sale_date = _timestamp(ld.get("saleDate"), _zone(ld.get("ianaTimeZone")))
    title = " ".join(str(p) for p in (ld.get("yr"), ld.get("mk"), ld.get("md")) if p)

    fields = {
        "lot_number": _str(details.get("ln")) or _str(ld.get("ln")),
        "title": title,
        "year": ld.get("yr"),
        "make": ld.get("mk"),
        "model": ld.get("md"),
        "vin": ld.get("fv"),
        "odometer": odometer,
        "primary_damage": ld.get("dmg"),
        "secondary_damage": ld.get("sdmg"),
        "vehicle_type": ld.get("vt"),
        "drive": ld.get("drv"),
        "fuel_type": ld.get("fuel"),
        "transmission": ld.get("tm"),
        "color": ld.get("clr"),
        "image_url": thumb,
        "location": ld.get("yn"),
        "current_bid": ld.get("highestBid") or ld.get("startingBid"),
        "buy_it_now": ld.get("buyNowPrice"),
        "keys": ld.get("hk") in (True, "YES", "Y"),
        "start_code": ld.get("stc"),
        "highlights": ld.get("hl"),
        "sale_date": utc_iso(sale_date) if sale_date else None,
        "time_zone": ld.get("ianaTimeZone"),
        "sale_status": API_STATUS_MAP.get(str(ld.get("saleStatus") or "").upper(), SaleStatus.FUTURE),
    }
    return canonical_listing(fields)


# --- shared canonicalization ---

def canonical_listing(fields: Dict[str, Any]) -> Optional[Listing]:
    """Coerce raw source values into a validated `Listing`."""
    if not fields.get("lot_number"):
        logger.warning("Lot data has no lot number")
        return None

    out = dict(fields)
    for key in ("title", "make", "model", "vin", "primary_damage", "secondary_damage",
                "title_status", "title_type", "vehicle_type", "drive", "fuel_type",
                "transmission", "color", "location", "start_code", "sale_time"):
        out[key] = _str(out.get(key))
    out["lot_number"] = _str(out["lot_number"])
    out["year"] = _int(out.get("year"))
    out["current_bid"] = _number(out.get("current_bid"))

    buy_now = _number(out.get("buy_it_now"))
    out["buy_it_now"] = buy_now if buy_now and buy_now > 0 else None
    out["has_buy_now"] = out["buy_it_now"] is not None

    image = _str(out.get("image_url"))
    out["image_url"] = image.replace(THUMBNAIL_SUFFIX, FULL_SUFFIX) if image else None

    odometer = out.get("odometer")
    if odometer is not None:
        value = _number(odometer["value"])
        out["odometer"] = {"value": value, "unit": odometer["unit"]} if value is not None else None

    highlights = out.get("highlights")
    out["highlights"] = [str(h) for h in highlights] if isinstance(highlights, list) else []
    out["time_zone"] = _str(out.get("time_zone")) or LOT_TIMEZONE

    status = out.get("sale_status") or SaleStatus.UNKNOWN
    out["sale_status"] = status
    out["sale_status_description"] = status.description
    try:
        return Listing(**out)
    except ValidationError as e:
        logger.warning("Lot %s failed validation: %s", out["lot_number"], e)
        return None


def _str(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _number(value):
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(str(value).replace(",", "").strip())
    except ValueError:
        return None


def _int(value) -> Optional[int]:
    number = _number(value)
    return int(number) if number is not None else None


def _zone(name) -> ZoneInfo:
    if name:
        try:
            return ZoneInfo(str(name))
        except (ZoneInfoNotFoundError, ValueError):
            logger.debug("Unknown time zone %r, using %s", name, LOT_TIMEZONE)
    return ZoneInfo(LOT_TIMEZONE)


def _timestamp(value, tz: ZoneInfo) -> Optional[datetime]:
    """Sale timestamps arrive as epoch milliseconds or ISO-8601 text."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) or (isinstance(value, str) and value.strip().isdigit()):
        try:
            return datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    return parse_iso(str(value), tz)
