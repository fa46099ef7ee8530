"""Pytest configuration shared across the suite."""

import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def parse_frames(stream_text):
    """Split SSE text into (event, data) pairs."""
    import json

    frames = []
    for block in stream_text.split("\n\n"):
        if not block.strip():
            continue
        event_line, data_line = block.split("\n", 1)
        assert event_line.startswith("event: ")
        assert data_line.startswith("data: ")
        frames.append((event_line[len("event: "):], json.loads(data_line[len("data: "):])))
    return frames


@pytest.fixture
def frames_of():
    return parse_frames


class FakeClock:
    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()
