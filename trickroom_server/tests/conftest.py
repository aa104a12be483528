import random

import pytest

from helpers import RECONNECTION_TIMEOUT, TRICK_END_DELAY, TURN_TIMEOUT, ManualScheduler
from trickroom_server.config import Config, TimingConfig
from trickroom_server.network.transport import RecordingTransport


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def timing():
    return TimingConfig(
        turn_timeout=TURN_TIMEOUT,
        trick_end_delay=TRICK_END_DELAY,
        reconnection_timeout=RECONNECTION_TIMEOUT,
    )


@pytest.fixture
def config(timing):
    return Config(timing=timing)


@pytest.fixture
def rng():
    return random.Random(1234)
