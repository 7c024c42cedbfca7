import logging
import os

import pytest

import subcollection.config as config_module
from subcollection.models import Collection


NAMES = "abcdefghij"


def widget_data(count: int = 100) -> list:
    """Widget dictionaries, added highest id first like a live feed."""
    data = []
    for i in reversed(range(count)):
        data.append({
            "id": i,
            "name": NAMES[i % 10],
            "awesomeness": i % 10,
            "sweet": i % 2 == 0,
        })
    return data


class EventRecorder:
    """Collects every event an emitter fires, in order."""

    def __init__(self, emitter):
        self.events = []
        emitter.on("all", self._record)

    def _record(self, name, *args):
        self.events.append((name, args))

    def names(self) -> list:
        return [name for name, _ in self.events]

    def records(self, name: str) -> list:
        return [args[0] for event_name, args in self.events if event_name == name]

    def ids(self, name: str) -> list:
        return [record.id for record in self.records(name)]


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user/local config files and env vars out of every test."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("SUBCOLLECTION_"):
            monkeypatch.delenv(key)
    monkeypatch.setattr(config_module, "_config", None)

    logger = logging.getLogger("subcollection")
    level = logger.level
    yield
    logger.setLevel(level)


@pytest.fixture
def widgets():
    """100 widgets: awesomeness cycles 0-9, even ids are sweet, sorted by awesomeness."""
    return Collection(widget_data(), comparator="awesomeness")


@pytest.fixture
def recorder():
    """Factory attaching an EventRecorder to an emitter."""
    return EventRecorder
