# Copyright (c) Nex-AGI. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Synod CLI - dispatcher for the run and reset-statuses commands."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from synod.cli.commands import reset_statuses, run


def create_parser() -> argparse.ArgumentParser:
    """Create the main CLI parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="synod",
        description="Synod agent team orchestration CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands", required=False)

    run_parser = subparsers.add_parser("run", help="Seed a team from YAML and run it until it stops")
    run.setup_parser(run_parser)
    run_parser.set_defaults(func=run.main)

    reset_parser = subparsers.add_parser(
        "reset-statuses",
        help="Mark teams and agents left running by a previous process as stopped",
    )
    reset_statuses.setup_parser(reset_parser)
    reset_parser.set_defaults(func=reset_statuses.main)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI main entry point.

    Returns:
        Exit code (0 = success, non-0 = error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
