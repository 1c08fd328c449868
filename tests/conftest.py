import pytest

from core.cancellation import CancellationToken


@pytest.fixture
def token():
    return CancellationToken()
