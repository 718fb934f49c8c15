"""Command line entrypoint: run one scan or serve the HTTP API.

Usage::

    python -m breakout_scanner scan --symbols BTC-USD,ETH-USD --top-n 5
    python -m breakout_scanner serve --port 8000
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional, Sequence

import orjson
import uvicorn
from loguru import logger

from breakout_scanner.config import get_settings
from breakout_scanner.schemas.scan import AnalysisModel, ScanRequest
from breakout_scanner.services.scanner import build_scan_service
from breakout_scanner.utils.charts import chart_symbol
from breakout_scanner.utils.errors import ApiError
from breakout_scanner.utils.logging import configure_logging


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="breakout_scanner",
        description="Rank crypto breakout candidates from chart patterns and market signals.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    scan_parser = commands.add_parser("scan", help="Run one scan and print the ranking as JSON")
    scan_parser.add_argument(
        "--symbols",
        default="",
        help="Comma-separated products to scan (defaults to the exchange universe)",
    )
    scan_parser.add_argument("--top-n", type=int, default=None, help="Number of candidates to keep")

    serve_parser = commands.add_parser("serve", help="Serve the HTTP API with uvicorn")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    return parser.parse_args(argv)


async def run_scan(symbols: List[str], top_n: Optional[int]) -> bytes:
    """Run a scan and return the ranking serialised as JSON."""
    request = ScanRequest(symbols=symbols or None, top_n=top_n)
    service = build_scan_service(config=get_settings())
    results = await service.run(request.symbols, request.top_n)
    payload = []
    for item in results:
        document = AnalysisModel.model_validate(item).model_dump(mode="json")
        document["chart_symbol"] = chart_symbol(item.symbol)
        payload.append(document)
    return orjson.dumps(payload, option=orjson.OPT_INDENT_2)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    if args.command == "serve":
        uvicorn.run(
            "breakout_scanner.app:create_app",
            factory=True,
            host=args.host,
            port=args.port,
        )
        return 0

    # Keep stdout for the JSON document.
    configure_logging(sys.stderr)
    symbols = [symbol for symbol in args.symbols.split(",") if symbol.strip()]
    try:
        output = asyncio.run(run_scan(symbols, args.top_n))
    except ApiError as exc:
        logger.bind(code=exc.code).error("scan.failed: {}", exc.message)
        return 1
    sys.stdout.write(output.decode() + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
