import os
import random

import pytest

from letterdash.degradation import DegradationController
from letterdash.error_tracker import ErrorTracker
from letterdash.events import EventEmitter
from letterdash.storage import MemoryBackend, StorageGateway


class FailingBackend:
    """Backend whose every operation fails like an unreachable disk."""

    def __init__(self, message="disk unavailable"):
        self.message = message
        self.calls = 0

    def _fail(self):
        self.calls += 1
        raise OSError(self.message)

    def has(self, key):
        self._fail()

    def get(self, key):
        self._fail()

    def set(self, key, value):
        self._fail()

    def remove(self, key):
        self._fail()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def events():
    return EventEmitter()


@pytest.fixture
def storage(events):
    return StorageGateway(MemoryBackend(), events)


@pytest.fixture
def failing_storage(events):
    return StorageGateway(FailingBackend(), events)


@pytest.fixture
def tracker(events):
    return ErrorTracker(events=events)


@pytest.fixture
def degradation(events, tracker, rng):
    return DegradationController(events=events, error_tracker=tracker, rng=rng)


@pytest.fixture
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def failing_backend():
    return FailingBackend()
