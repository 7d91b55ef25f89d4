# lottracker/utils.py
"""Shared utilities: logging, retry decorator and time helpers.

Environment variables are loaded from `.env` here so every module that imports
the logger sees the same configuration.
"""
import os
import asyncio
import logging
from datetime import datetime, timezone
from functools import wraps
from typing import Optional
from zoneinfo import ZoneInfo
from dotenv import load_dotenv

load_dotenv()

LOT_TIMEZONE = os.getenv("LOT_TIMEZONE", "America/New_York")

def get_logger(name=__name__):
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        level=getattr(logging, level, logging.INFO)
    )
    return logging.getLogger(name)

logger = get_logger("lot-tracker")

def retry(exceptions, tries=3, delay=1, backoff=2, logger=logger, should_retry=None):
    """Retry an async callable on `exceptions`.

    `should_retry(exc)` narrows which caught exceptions are worth another
    attempt; anything it rejects is re-raised immediately.
    """
    def deco_retry(f):
        @wraps(f)
        async def f_retry(*args, **kwargs):
            mtries, mdelay = tries, delay
            while mtries > 1:
                try:
                    return await f(*args, **kwargs)
                except exceptions as e:
                    if should_retry is not None and not should_retry(e):
                        raise
                    logger.warning("Retryable error: %s, retrying in %s sec", e, mdelay)
                    await asyncio.sleep(mdelay)
                    mtries -= 1
                    mdelay *= backoff
            return await f(*args, **kwargs)
        return f_retry
    return deco_retry

def local_timezone() -> ZoneInfo:
    return ZoneInfo(LOT_TIMEZONE)

def now() -> datetime:
    """Current wall-clock time in the configured lot timezone."""
    return datetime.now(tz=local_timezone())

def utc_iso(value: datetime) -> str:
    """ISO-8601 string in UTC with a trailing `Z`."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=local_timezone())
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def parse_iso(value: Optional[str], tz: Optional[ZoneInfo] = None) -> Optional[datetime]:
    """Parse ISO-8601 text; naive values are taken to be in `tz` (default lot zone)."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparsable timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz or local_timezone())
    return parsed
