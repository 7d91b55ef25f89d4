# lottracker/services.py
import os
from datetime import datetime
from typing import Optional
from .errors import ExtractionError, FetchError
from .extract import extract
from .schemas import Listing
from .scrape import LotFetcher
from .utils import logger

LOT_SOURCE = os.getenv("LOT_SOURCE", "html").lower()

async def fetch_listing(fetcher: LotFetcher, lot_number: str, source: str = LOT_SOURCE,
                        now: Optional[datetime] = None) -> Listing:
    """Fetch one lot and extract it.

    `source` is "html", "json", or "auto" (the page first, then the
    lot-details API when the page yields nothing).
    """
    if source == "json":
        listing = extract(await fetcher.fetch_json(lot_number), now)
    else:
        listing = None
        try:
            listing = extract(await fetcher.fetch_html(lot_number), now)
        except FetchError:
            if source != "auto":
                raise
            logger.warning("Page fetch for lot %s failed, trying lot details API", lot_number)
        if listing is None and source == "auto":
            listing = extract(await fetcher.fetch_json(lot_number), now)
    if listing is None:
        logger.warning("Could not extract lot data for %s", lot_number)
        raise ExtractionError(lot_number)
    logger.info("Extracted lot %s (%s)", listing.lot_number, listing.sale_status.value)
    return listing
