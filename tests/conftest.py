from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tests.fixtures.status_helpers import DummyLogger, DummyTransport, FakeClock  # noqa: E402


@pytest.fixture
def logger() -> DummyLogger:
    return DummyLogger()


@pytest.fixture
def transport() -> DummyTransport:
    return DummyTransport()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
