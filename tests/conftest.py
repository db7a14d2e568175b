from __future__ import annotations

import pytest

from src.event_attendance.event_attendance.container import build_container
from src.event_attendance.event_attendance.core.enums import EventStatus
from src.event_attendance.event_attendance.database.memory_store import InMemoryStore


@pytest.fixture
def store() -> InMemoryStore:
    s = InMemoryStore()
    s.add_event("expo", "Project Expo")
    s.add_event("future", "Future Fest", status=EventStatus.SCHEDULED)
    s.add_student("stu-1", "Asha Raman", roll_number="21CS001")
    s.add_student("stu-2", "Daniel Okoye", roll_number="21EC014")
    s.add_student("stu-3", "Mei Lin", is_active=False)
    return s


@pytest.fixture
def container(store):
    return build_container(storage_backend="memory", memory_store=store)
