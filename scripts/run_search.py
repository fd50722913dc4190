"""Run one business search from the command line and print the results as JSON."""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from config import settings
from models.domain import Coordinates
from services.lead_search import LeadSearchOrchestrator

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search businesses in a region")
    parser.add_argument("region", help="Street, neighbourhood or city to sweep")
    parser.add_argument("--segment", default="", help="Business segment; omit for a broad sweep")
    parser.add_argument("--max-results", type=int, default=20, help="Number of businesses to collect")
    parser.add_argument("--lat", type=float, help="Reference latitude")
    parser.add_argument("--lng", type=float, help="Reference longitude")
    return parser


async def run(args: argparse.Namespace) -> list[dict]:
    coordinates = None
    if args.lat is not None and args.lng is not None:
        coordinates = Coordinates(lat=args.lat, lng=args.lng)

    orchestrator = LeadSearchOrchestrator()
    entities = await orchestrator.search(
        args.segment,
        args.region,
        args.max_results,
        on_progress=lambda message: logger.info(message),
        on_batch=lambda batch: logger.info(f"Received {len(batch)} new businesses"),
        coordinates=coordinates,
    )
    return [asdict(entity) for entity in entities]


def main() -> None:
    args = build_parser().parse_args()
    results = asyncio.run(run(args))
    json.dump(results, sys.stdout, ensure_ascii=False, indent=2, default=str)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
