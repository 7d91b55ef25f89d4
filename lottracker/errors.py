"""Error types raised across the lot tracker."""

from enum import Enum


class FetchErrorKind(str, Enum):
    """Why the upstream fetch failed, with the HTTP status it maps to."""

    TIMEOUT = "TIMEOUT"
    BLOCKED = "BLOCKED"
    NOT_FOUND = "NOT_FOUND"
    NETWORK = "NETWORK"
    UNKNOWN = "UNKNOWN"

    @property
    def http_status(self) -> int:
        return _FETCH_STATUS[self]


_FETCH_STATUS = {
    FetchErrorKind.TIMEOUT: 504,
    FetchErrorKind.NETWORK: 502,
    FetchErrorKind.BLOCKED: 403,
    FetchErrorKind.NOT_FOUND: 404,
    FetchErrorKind.UNKNOWN: 500,
}

_FETCH_DETAIL = {
    FetchErrorKind.TIMEOUT: "Request to the auction site timed out",
    FetchErrorKind.NETWORK: "Unable to connect to the auction site",
    FetchErrorKind.BLOCKED: "Access denied by the auction site",
    FetchErrorKind.NOT_FOUND: "Lot not found",
    FetchErrorKind.UNKNOWN: "Error processing request",
}


class LotTrackerError(Exception):
    """Base exception for the lot tracker."""

    http_status = 500

    @property
    def detail(self) -> str:
        return str(self) or self.__class__.__name__


class FetchError(LotTrackerError):
    """Upstream page or API could not be fetched."""

    def __init__(self, kind: FetchErrorKind, message: str = ""):
        super().__init__(message or _FETCH_DETAIL[kind])
        self.kind = kind

    @property
    def http_status(self) -> int:  # type: ignore[override]
        return self.kind.http_status

    @property
    def detail(self) -> str:
        return _FETCH_DETAIL[self.kind]


class ExtractionError(LotTrackerError):
    """Fetched document did not contain usable lot data."""

    http_status = 404

    def __init__(self, lot_number: str):
        super().__init__("Could not extract lot data")
        self.lot_number = lot_number


class LotNotFoundError(LotTrackerError):
    """Lot is not in the tracking list."""

    http_status = 404


class DuplicateLotError(LotTrackerError):
    """Lot is already in the tracking list."""

    http_status = 409


class InvalidLotInputError(LotTrackerError):
    """Input is neither a lot number nor a lot URL."""

    http_status = 400
