"""Command-line entry point for one-shot drains."""

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from maildrain.config import load_settings
from maildrain.engine import MailDrainError
from maildrain.invocation import run_invocation


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="maildrain",
        description="Drain a voip.ms voicemail box under a mailbox lease",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    drain = subparsers.add_parser("drain", help="Download and delete every voicemail once")
    drain.add_argument(
        "--budget-seconds",
        type=float,
        default=None,
        help="Remaining execution budget; sizes the lease (default: from settings)",
    )
    drain.add_argument(
        "--debug-single",
        action="store_true",
        help="Download the head voicemail only and delete nothing",
    )

    subparsers.add_parser("serve", help="Run the HTTP trigger server")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        from maildrain.main import main as serve

        serve()
        return 0

    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        outcome = asyncio.run(
            run_invocation(
                settings,
                budget_seconds=args.budget_seconds,
                single_item_debug=True if args.debug_single else None,
            )
        )
    except MailDrainError:
        # Already logged with traceback by the invocation layer
        return 1
    except ValueError as e:
        print(f"maildrain: {e}", file=sys.stderr)
        return 2

    print(outcome.model_dump_json())
    return 0 if outcome.is_clean else 1


if __name__ == "__main__":
    sys.exit(main())
