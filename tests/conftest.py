from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.geo_attendance.geo_attendance.container import build_container
from src.geo_attendance.geo_attendance.database.memory_store import InMemoryDocumentStore
from tests.support import CENTER, ManualClock


@pytest.fixture
def clock():
    return ManualClock(datetime(2025, 1, 6, 8, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def container(store, clock):
    c = build_container(store=store, clock=clock)
    c.classes.register_class(class_id="C1", teacher_id="T1", name="Networks")
    for student_id in ("S1", "S2", "S3", "S4"):
        c.classes.enroll(class_id="C1", student_id=student_id)
    c.classes.register_class(class_id="C2", teacher_id="T2", name="Databases")
    c.classes.enroll(class_id="C2", student_id="S1")
    return c


@pytest.fixture
def active_session(container):
    return container.session_manager.create_session(
        class_id="C1",
        teacher_id="T1",
        location=CENTER,
        radius_meters=50,
    )
