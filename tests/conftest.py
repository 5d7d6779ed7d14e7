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

"""
Pytest configuration and fixtures for synod tests.

Every test runs with ``HOME`` pointed at a temporary directory and without
an Anthropic key, so nothing reads the developer's ``~/.synod`` or reaches
the network.
"""

import asyncio
import os
from unittest.mock import patch

import pytest

from synod.archs.session.models import ALL_MODELS
from synod.archs.session.orm import InMemoryDatabaseEngine


@pytest.fixture(autouse=True)
def isolated_env(tmp_path):
    """Isolate environment variables for consistent testing."""
    home = tmp_path / "home"
    home.mkdir()
    with patch.dict(os.environ, {"HOME": str(home), "TESTING": "true"}):
        os.environ.pop("ANTHROPIC_API_KEY", None)
        yield


@pytest.fixture
def engine():
    """In-memory store with every table registered."""
    store = InMemoryDatabaseEngine()
    asyncio.run(store.setup_models(ALL_MODELS))
    return store


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
