import random

import pytest

from cowrie.messaging.router import MessageRouter
from cowrie.session.manager import SessionManager
from cowrie.session.registry import RoomRegistry


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def registry(rng):
    return RoomRegistry(rng=rng)


@pytest.fixture
def manager(registry, rng):
    return SessionManager(registry, rng=rng)


@pytest.fixture
def router(manager):
    return MessageRouter(manager)
