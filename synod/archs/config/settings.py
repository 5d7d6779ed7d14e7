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

"""Process-wide settings.

Loaded once at startup (``load_config``) and handed by reference to the
supervisor and its collaborators. Durations are in seconds.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path("~/.synod")
DEFAULT_CHANNELS: tuple[str, ...] = ("general", "planning", "design", "engineering", "escalations", "suggestions")


class ConfigError(Exception):
    """Exception raised for configuration errors."""


class ModelPrice(BaseModel):
    """USD price per million tokens."""

    model_config = ConfigDict(extra="forbid")

    input_per_mtok: float = Field(ge=0)
    output_per_mtok: float = Field(ge=0)


def _default_prices() -> dict[str, ModelPrice]:
    return {
        "claude-opus-4-1": ModelPrice(input_per_mtok=15.0, output_per_mtok=75.0),
        "claude-sonnet-4-5": ModelPrice(input_per_mtok=3.0, output_per_mtok=15.0),
        "claude-haiku-4-5": ModelPrice(input_per_mtok=1.0, output_per_mtok=5.0),
    }


class SynodConfig(BaseModel):
    """Validated engine configuration."""

    model_config = ConfigDict(extra="forbid")

    # --- inference ---
    default_model: str = "claude-sonnet-4-5"
    agent_model_overrides: dict[str, str] = Field(default_factory=dict)
    api_key: str | None = None
    max_output_tokens: int = Field(default=8192, gt=0)
    model_prices: dict[str, ModelPrice] = Field(default_factory=_default_prices)

    # --- budget ---
    max_budget_usd: float | None = Field(default=None, gt=0)
    budget_warning_ratio: float = Field(default=0.8, gt=0, lt=1)

    # --- idle nudges ---
    idle_nudge_interval_seconds: float = Field(default=15 * 60, ge=0)
    idle_nudge_max_interval_seconds: float = Field(default=2 * 60 * 60, gt=0)
    idle_nudge_observation_window_seconds: float = Field(default=5 * 60, gt=0)
    idle_nudge_max_fruitless: int = Field(default=3, ge=1)
    idle_nudge_budget_threshold: float = Field(default=0.8, gt=0, le=1)

    # --- inbound queue ---
    message_queue_max_size: int = Field(default=50, ge=1)
    message_queue_aggregation_threshold: int = Field(default=10, ge=1)
    message_queue_keep_recent: int = Field(default=3, ge=0)
    message_queue_truncate_length: int = Field(default=100, ge=1)

    # --- workers ---
    context_window_threshold: int = Field(default=150_000, gt=0)
    agent_max_restart_attempts: int = Field(default=5, ge=1)
    agent_restart_backoff_base_seconds: float = Field(default=1.0, ge=0)
    agent_restart_backoff_max_seconds: float = Field(default=60.0, ge=0)
    agent_restart_grace_seconds: float = Field(default=0.5, ge=0)
    agent_stop_timeout_seconds: float = Field(default=10.0, gt=0)
    max_runtime_minutes: int = Field(default=180, ge=0)

    # --- activity log ---
    activity_log_max_entries: int = Field(default=10_000, ge=1)

    # --- storage ---
    data_dir: Path = DEFAULT_DATA_DIR
    database_url: str | None = None
    default_channels: list[str] = Field(default_factory=lambda: list(DEFAULT_CHANNELS))

    @model_validator(mode="after")
    def _check_ranges(self) -> SynodConfig:
        if self.idle_nudge_max_interval_seconds < self.idle_nudge_interval_seconds:
            raise ValueError("idle_nudge_max_interval_seconds must be >= idle_nudge_interval_seconds")
        if self.agent_restart_backoff_max_seconds < self.agent_restart_backoff_base_seconds:
            raise ValueError("agent_restart_backoff_max_seconds must be >= agent_restart_backoff_base_seconds")
        if self.message_queue_keep_recent > self.message_queue_aggregation_threshold:
            raise ValueError("message_queue_keep_recent must not exceed message_queue_aggregation_threshold")
        return self

    # --- derived values ---

    @property
    def resolved_data_dir(self) -> Path:
        return self.data_dir.expanduser()

    def resolved_database_url(self) -> str:
        """SQLite file under the data dir unless a URL is configured."""
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{self.resolved_data_dir / 'synod.db'}"

    def workspace_for(self, team_id: str) -> Path:
        return self.resolved_data_dir / "workspaces" / team_id

    def model_for(self, agent_id: str, model_override: str | None = None) -> str:
        if model_override:
            return model_override
        return self.agent_model_overrides.get(agent_id, self.default_model)

    def resolve_api_key(self) -> str | None:
        """Configured key first, then ``ANTHROPIC_API_KEY``."""
        return self.api_key or os.environ.get("ANTHROPIC_API_KEY")

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> SynodConfig:
        """Load and validate configuration from a YAML file.

        Raises:
            ConfigError: missing file, malformed YAML or invalid values.
        """
        path = Path(config_path).expanduser()
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")
        try:
            with open(path, encoding="utf-8") as f:
                raw: Any = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML parsing error in {config_path}: {e}") from e

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError(f"Configuration root must be a mapping: {config_path}")
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration in {config_path}: {exc}") from exc


def load_config(config_path: str | Path | None = None) -> SynodConfig:
    """Load configuration.

    An explicit path must exist. Without one, ``~/.synod/config.yaml`` is
    read when present and defaults are used otherwise.
    """
    if config_path is not None:
        return SynodConfig.from_yaml(config_path)

    default_path = DEFAULT_DATA_DIR.expanduser() / "config.yaml"
    if default_path.exists():
        logger.info(f"Loading configuration from {default_path}")
        return SynodConfig.from_yaml(default_path)
    return SynodConfig()
