import json
import asyncio
import argparse
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch auction lots and save them as JSON")
    parser.add_argument("lots", nargs="+", help="Lot numbers or lot URLs")
    parser.add_argument("--out", default="lots.json", help="Output file")
    parser.add_argument("--source", choices=["html", "json", "auto"], default=None,
                        help="Where to read lot data from (default: LOT_SOURCE)")
    return parser


async def fetch_all(lot_inputs, source=None):
    """Fetch every lot concurrently; failures are reported and skipped."""
    from lottracker.scrape import LotFetcher
    from lottracker.services import LOT_SOURCE, fetch_listing
    from lottracker.errors import InvalidLotInputError
    from lottracker.tracking import parse_lot_number

    numbers = []
    for text in lot_inputs:
        try:
            numbers.append(parse_lot_number(text))
        except InvalidLotInputError as e:
            print(f"Skipping {text!r}: {e}")
    if not numbers:
        return []

    fetcher = LotFetcher()
    try:
        results = await asyncio.gather(
            *(fetch_listing(fetcher, n, source or LOT_SOURCE) for n in numbers),
            return_exceptions=True,
        )
    finally:
        await fetcher.close()

    listings = []
    for number, result in zip(numbers, results):
        if isinstance(result, Exception):
            print(f"Lot {number}: {result}")
            continue
        listings.append(result.model_dump(mode="json", by_alias=True))
    return listings


def main(argv=None):
    args = build_parser().parse_args(argv)
    listings = asyncio.run(fetch_all(args.lots, args.source))
    with open(args.out, "w", encoding="utf-8") as fh:
        json.dump(listings, fh, indent=2)
    print(f"Saved {len(listings)} of {len(args.lots)} lot(s) to {args.out}")
    return 0 if listings else 1


if __name__ == "__main__":
    raise SystemExit(main())
