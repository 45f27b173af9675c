"""Common test fixtures for zettelvc."""

import tempfile
from pathlib import Path

import pytest

from tests.fakes import FakeClock, InMemoryStore
from zettelvc.config import config
from zettelvc.observability import metrics
from zettelvc.services.note_service import NoteService
from zettelvc.storage.note_repository import NoteRepository
from zettelvc.tui.controller import Controller


@pytest.fixture(autouse=True)
def _reset_metrics():
    """Keep the global metrics collector isolated between tests."""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def test_config(temp_dir, monkeypatch):
    """Point the global config at temporary paths (auto-restored)."""
    monkeypatch.setattr(config, "repo_path", temp_dir / "repo")
    monkeypatch.setattr(config, "log_dir", temp_dir / "logs")
    monkeypatch.setattr(config, "export_dir", temp_dir / "export")
    yield config


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repository(store):
    """A loaded repository over an empty in-memory store."""
    repo = NoteRepository(store)
    repo.load()
    return repo


@pytest.fixture
def service(repository, clock):
    return NoteService(repository, clock=clock)


@pytest.fixture
def controller(service, temp_dir):
    return Controller(service, export_dir=temp_dir, history_limit=20)
