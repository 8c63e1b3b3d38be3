"""Run one startup discovery search from the command line."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from app.clients.errors import ModeError
from app.config import Settings, settings
from app.models.run_summary import SearchResponse
from app.services.discovery.coordinator import build_coordinator

logger = logging.getLogger("pipelines.discovery_run")


async def run_search(
    query: str,
    *,
    lookback_days: int | None = None,
    config: Settings | None = None,
) -> SearchResponse:
    """Execute one search, waiting for background persistence before returning."""
    coordinator = build_coordinator(config or settings)
    try:
        response = await coordinator.search(query, lookback_days)
        await coordinator.assembler.drain()
        return response
    finally:
        await coordinator.registry.aclose()


def render_response(response: SearchResponse) -> dict[str, Any]:
    return response.model_dump(mode="json", by_alias=True, exclude_none=True)


def write_output(payload: dict[str, Any], output: Path | None) -> None:
    text = json.dumps(payload, indent=2)
    if output is None:
        sys.stdout.write(f"{text}\n")
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(f"{text}\n", encoding="utf-8")


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    """CLI argument parsing."""
    parser = argparse.ArgumentParser(description="Discover recently funded startups across all sources.")
    parser.add_argument("--query", default="", help="Free-text discovery query.")
    parser.add_argument(
        "--lookback-days",
        type=int,
        default=None,
        help="Override the lookback window parsed from the query (1-365).",
    )
    parser.add_argument("--mode", choices=["online", "fixture"], default=None, help="Override SCOUT_MODE.")
    parser.add_argument("--fixture-dir", default=None, help="Override SCOUT_FIXTURE_DIR.")
    parser.add_argument("--output", type=Path, default=None, help="Write the JSON response here instead of stdout.")
    args = parser.parse_args(argv)
    if args.lookback_days is not None and not 1 <= args.lookback_days <= 365:
        parser.error("--lookback-days must be between 1 and 365")
    return args


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint for a discovery run."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stderr,
    )
    args = parse_args(argv if argv is not None else sys.argv[1:])
    overrides: dict[str, Any] = {}
    if args.mode:
        overrides["scout_mode"] = args.mode
    if args.fixture_dir:
        overrides["fixture_dir"] = args.fixture_dir
    config = settings.model_copy(update=overrides) if overrides else settings

    try:
        response = asyncio.run(run_search(args.query, lookback_days=args.lookback_days, config=config))
    except ModeError as exc:
        logger.error("Discovery configuration error: %s (code=%s)", exc, exc.code)
        return 1

    write_output(render_response(response), args.output)
    summary = response.summary
    logger.info(
        "Discovery finished: %s records from %s/%s sources.",
        len(response.records),
        summary.successful_sources,
        summary.total_sources,
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(main())
