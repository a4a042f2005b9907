"""Shared fixtures: a real SQLite file per test and a recording notifier."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import MagicMock
from datetime import datetime
from lpr_hub.database import build_engine, make_session_factory, create_tables
from lpr_hub.services.entity_store import EntityStore
from lpr_hub.services.event_parser import DetectionEvent


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def store(engine, notifier):
    return EntityStore(make_session_factory(engine), notifier)


def make_detection(channel_id="CAM-07", plate="ABC123", date_time=None, **extra):
    return DetectionEvent(
        channel_id=channel_id,
        date_time=date_time or datetime(2024, 1, 1, 10, 0, 0),
        event_type="detection",
        license_plate=plate,
        **extra,
    )
