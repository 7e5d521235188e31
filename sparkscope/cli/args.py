# sparkscope/cli/args.py
from __future__ import annotations

import argparse
from typing import Optional

DEFAULT_COMMAND_ID = "session"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sparkscope")
    parser.add_argument("--log-level", default=None, help="Override the configured log level.")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    pr = sub.add_parser("replay", help="Replay a JSONL script of channel envelopes and host directives.")
    pr.add_argument("script", help="Path to the JSONL script.")
    pr.add_argument("--config", default=None, help="Optional YAML config (display_mode, logging).")
    pr.add_argument("--hide-details", action="store_true", help="Print only one line per monitor.")

    pl = sub.add_parser("listen", help="Open the configured channel and log correlated events.")
    pl.add_argument("--config", required=True, help="YAML config with the channel section.")
    pl.add_argument(
        "--command",
        default=DEFAULT_COMMAND_ID,
        help="Id of the single session-wide command all jobs are attributed to.",
    )
    pl.add_argument("--secs", type=float, default=None, help="Stop after this many seconds.")

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
