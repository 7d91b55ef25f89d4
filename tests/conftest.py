# tests/conftest.py
import json
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

NY = ZoneInfo("America/New_York")
# Wed. Jul 30, 2025 9:00 AM EDT
NOW = datetime(2025, 7, 30, 9, 0, tzinfo=NY)


def epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def base_lot(**overrides):
    lot = {
        "lotNumberStr": "55512345",
        "ln": 55512345,
        "ld": " 2019 TOYOTA CAMRY SE ",
        "lcy": 2019,
        "mkn": "TOYOTA",
        "lm": "CAMRY SE",
        "fv": "4T1B11HK5KU000000",
        "ord": "ACTUAL",
        "orr": 48211.0,
        "dd": "FRONT END",
        "sdd": "MINOR DENT/SCRATCHES",
        "tgd": "SALVAGE",
        "td": "CA",
        "vehTypDesc": "AUTOMOBILE",
        "drv": "Front-wheel Drive",
        "ft": "GAS",
        "tmtp": "AUTOMATIC",
        "clr": "WHITE",
        "tims": "https://cs.example.com/v1/AUTH/lpp/0725/abc_thb.jpg",
        "yn": "CA - SACRAMENTO",
        "hb": 1250,
        "myb": 0,
        "hk": "YES",
        "lcd": "RUNS AND DRIVES",
        "lfd": ["RUNS_DRIVES"],
        "ss": 2,
        "ad": epoch_ms(NOW + timedelta(days=2)),
        "at": "10:00:00",
        "ianaTimeZone": "America/New_York",
    }
    lot.update(overrides)
    return {k: v for k, v in lot.items() if v is not None}


def lot_page(lot=None, extra_html=""):
    """HTML page embedding `lot` the way the auction site does."""
    lot = base_lot() if lot is None else lot
    escaped = json.dumps(lot).replace("\\", "\\\\").replace('"', '\\"')
    return f"""<html><head>
<script>var analytics = {{}};</script>
<script>window.appState = {{ cachedSolrLotDetailsStr: "{escaped}", other: 1 }};</script>
</head><body><div class="lot">{extra_html}</div></body></html>"""


def api_payload(**ld_overrides):
    ld = {
        "yr": 2018,
        "mk": "HONDA",
        "md": "CIVIC",
        "dmg": "REAR END",
        "orr": "61000",
        "oru": "M",
        "thumb": "/lpp/0725/xyz_thb.jpg",
        "saleDate": "2025-08-02T14:00:00Z",
        "saleStatus": "PENDING",
        "yn": "TX - DALLAS",
        "highestBid": 800,
        "buyNowPrice": 3500,
        "fv": "2HGFC2F59JH000000",
        "hk": True,
    }
    ld.update(ld_overrides)
    return {"data": {"lotDetails": {"ln": 44400011, "ld": {k: v for k, v in ld.items() if v is not None}}}}


@pytest.fixture
def now():
    return NOW
