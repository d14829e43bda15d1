import pytest

from track_pool import Track


def _make_tracks(n=90):
    return [Track(id=i, name=f"Track {i}") for i in range(1, n + 1)]


@pytest.fixture
def make_tracks():
    return _make_tracks


@pytest.fixture
def tracks():
    return _make_tracks()
