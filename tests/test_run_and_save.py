# tests/test_run_and_save.py
import json

import pytest

import run_and_save
from lottracker import scrape, services
from lottracker.errors import FetchError, FetchErrorKind
from lottracker.schemas import Listing


class DummyFetcher:
    closed = False

    async def close(self):
        DummyFetcher.closed = True


def test_build_parser_defaults():
    args = run_and_save.build_parser().parse_args(["123"])
    assert args.lots == ["123"]
    assert args.out == "lots.json"
    assert args.source is None


def test_main_saves_successful_lots(monkeypatch, tmp_path):
    async def fake_fetch_listing(fetcher, lot_number, source):
        if lot_number == "2":
            raise FetchError(FetchErrorKind.TIMEOUT)
        return Listing(lot_number=lot_number)

    monkeypatch.setattr(scrape, "LotFetcher", DummyFetcher)
    monkeypatch.setattr(services, "fetch_listing", fake_fetch_listing)
    out = tmp_path / "lots.json"

    code = run_and_save.main(["https://www.copart.com/lot/1", "2", "--out", str(out)])

    assert code == 0
    saved = json.loads(out.read_text())
    assert [lot["lotNumber"] for lot in saved] == ["1"]
    assert DummyFetcher.closed is True


def test_main_skips_invalid_inputs(monkeypatch, tmp_path):
    async def fake_fetch_listing(fetcher, lot_number, source):
        return Listing(lot_number=lot_number)

    monkeypatch.setattr(scrape, "LotFetcher", DummyFetcher)
    monkeypatch.setattr(services, "fetch_listing", fake_fetch_listing)
    out = tmp_path / "lots.json"

    code = run_and_save.main(["123", "not a lot!", "--out", str(out)])

    assert code == 0
    assert [lot["lotNumber"] for lot in json.loads(out.read_text())] == ["123"]


def test_main_with_only_invalid_inputs_saves_nothing(monkeypatch, tmp_path):
    monkeypatch.setattr(scrape, "LotFetcher", DummyFetcher)
    out = tmp_path / "lots.json"

    assert run_and_save.main(["not a lot!", "--out", str(out)]) == 1
    assert json.loads(out.read_text()) == []
