import pytest

from tests.factories import FakeStore


@pytest.fixture
def store():
    return FakeStore()
