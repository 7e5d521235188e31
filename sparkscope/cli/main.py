# sparkscope/cli/main.py
from __future__ import annotations

from typing import Optional

from sparkscope.core.errors import SparkScopeError

from sparkscope.cli.args import parse_args
from sparkscope.cli.commands import run_listen, run_replay


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    try:
        if args.cmd == "replay":
            return run_replay(args)
        if args.cmd == "listen":
            return run_listen(args)
        return 2
    except SparkScopeError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
