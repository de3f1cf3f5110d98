"""Run one EDM credential refresh sweep from the command line.

Meant to be invoked by an external timer (cron, systemd timer) when the HTTP
admin endpoints are not reachable::

    python -m scripts.refresh_tokens --due-only

Prints the per-entry outcomes as JSON. Exits non-zero when any entry failed.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import List

from edm_sync.core.config import get_settings
from edm_sync.core.errors import ConfigurationError
from edm_sync.core.logging import configure_logging
from edm_sync.dependencies import get_credential_store, get_token_refresher
from edm_sync.models.credential import RefreshOutcome
from edm_sync.schemas import SweepResponse
from edm_sync.services import BatchRefreshScheduler

EXIT_OK = 0
EXIT_REFRESH_FAILED = 1
EXIT_CONFIGURATION_ERROR = 2


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError(f"batch size must be positive, got {number}")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Refresh stored EDM credentials.")
    parser.add_argument(
        "--due-only",
        action="store_true",
        help="Only refresh entries whose next refresh time has passed.",
    )
    parser.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        help="Page size for the sweep (default: REFRESH_BATCH_SIZE).",
    )
    return parser


async def _run(*, due_only: bool, batch_size: int) -> List[RefreshOutcome]:
    scheduler = BatchRefreshScheduler(
        store=get_credential_store(),
        refresher=get_token_refresher(),
        batch_size=batch_size,
    )
    return await scheduler.sweep(due_only=due_only)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    # stdout carries the JSON report.
    configure_logging(settings.log_level, stream=sys.stderr)

    batch_size = args.batch_size
    if batch_size is None:
        batch_size = settings.refresh.batch_size
    try:
        outcomes = asyncio.run(_run(due_only=args.due_only, batch_size=batch_size))
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR

    report = SweepResponse.from_outcomes(outcomes)
    print(json.dumps(report.model_dump(mode="json"), indent=2))
    if any(not outcome.ok for outcome in outcomes):
        return EXIT_REFRESH_FAILED
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
