# lottracker/api/routes.py
from fastapi import APIRouter, Depends, HTTPException, Request
from ..errors import LotTrackerError
from .. import schemas
from ..scrape import LotFetcher
from ..services import fetch_listing
from ..tracking import TrackedLots, parse_lot_number
from ..utils import logger

router = APIRouter()

def get_fetcher(request: Request) -> LotFetcher:
    return request.app.state.fetcher

def get_tracked(request: Request) -> TrackedLots:
    return request.app.state.tracked

def _http_error(e: LotTrackerError) -> HTTPException:
    logger.warning("%s: %s", e.__class__.__name__, e)
    return HTTPException(status_code=e.http_status, detail=e.detail)

@router.get("/health")
def health():
    return {"status": "ok"}

@router.get("/api/lot/{lot_number}", response_model=schemas.Listing)
async def get_lot(lot_number: str, fetcher: LotFetcher = Depends(get_fetcher)):
    try:
        return await fetch_listing(fetcher, parse_lot_number(lot_number))
    except LotTrackerError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Fetching lot %s failed: %s", lot_number, e)
        raise HTTPException(status_code=500, detail="Error processing request")

@router.get("/api/lots", response_model=schemas.Dashboard)
async def dashboard(tracked: TrackedLots = Depends(get_tracked)):
    tracked.purge_expired()
    return tracked.dashboard()

@router.post("/api/lots", response_model=schemas.TrackedListing, status_code=201)
async def add_lot(payload: schemas.LotAdd, tracked: TrackedLots = Depends(get_tracked)):
    try:
        return await tracked.add(payload.lot)
    except LotTrackerError as e:
        raise _http_error(e)

@router.post("/api/lots/refresh", response_model=schemas.RefreshSummary)
async def refresh_lots(tracked: TrackedLots = Depends(get_tracked)):
    return await tracked.refresh_all()

@router.post("/api/lots/{lot_number}/refresh", response_model=schemas.TrackedListing)
async def refresh_lot(lot_number: str, tracked: TrackedLots = Depends(get_tracked)):
    try:
        return await tracked.refresh(lot_number)
    except LotTrackerError as e:
        raise _http_error(e)

@router.patch("/api/lots/{lot_number}", response_model=schemas.TrackedListing)
async def update_lot(lot_number: str, payload: schemas.LotUpdate, tracked: TrackedLots = Depends(get_tracked)):
    try:
        return tracked.update(lot_number, **payload.model_dump(exclude_unset=True))
    except LotTrackerError as e:
        raise _http_error(e)

@router.delete("/api/lots/{lot_number}")
async def delete_lot(lot_number: str, tracked: TrackedLots = Depends(get_tracked)):
    try:
        tracked.remove(lot_number)
    except LotTrackerError as e:
        raise _http_error(e)
    return {"status": "deleted"}
