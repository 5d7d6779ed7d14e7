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

"""Reset-statuses command - clean up after a process that did not shut down."""

from __future__ import annotations

import argparse
import asyncio
import sys

from dotenv import load_dotenv

from synod.archs.config import ConfigError, SynodConfig
from synod.archs.inference import AnthropicInferenceProvider
from synod.archs.orchestration import Supervisor
from synod.cli.commands.run import add_common_arguments, configure_logging, load_run_config, open_engine


def setup_parser(parser: argparse.ArgumentParser) -> None:
    add_common_arguments(parser)


async def reset(config: SynodConfig) -> int:
    engine = open_engine(config)
    # Provider stays unused; its client is only created when a session opens
    supervisor = Supervisor(engine=engine, config=config, provider=AnthropicInferenceProvider(config))
    try:
        await supervisor.setup()
        return await supervisor.reset_stale_statuses()
    finally:
        await supervisor.shutdown()
        await engine.close()


def main(args: argparse.Namespace) -> int:
    load_dotenv()
    configure_logging(args.verbose)
    try:
        config = load_run_config(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    changed = asyncio.run(reset(config))
    print(f"Reset {changed} stale statuses")
    return 0
