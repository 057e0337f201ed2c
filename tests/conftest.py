from __future__ import annotations

import copy

import pytest

from helpers import SAMPLE_PAYLOAD, FakeClock


@pytest.fixture
def sample_payload():
    return copy.deepcopy(SAMPLE_PAYLOAD)


@pytest.fixture
def clock():
    return FakeClock()
