"""Example: drive the engine through the service layer (no Flask, no MySQL).

Controllers are thin; the attendance rules live in the services wired by
build_container.
"""

from datetime import datetime

from src.event_attendance.event_attendance.container import build_container
from src.event_attendance.event_attendance.database.memory_store import InMemoryStore


def main():
    store = InMemoryStore()
    store.add_event("expo", "Project Expo")
    store.add_student("stu-1", "Asha Raman")

    container = build_container(storage_backend="memory", memory_store=store)
    ingest = container.scan_ingestor.record_scan

    print(ingest("expo", "stu-1", "gate-a", datetime(2026, 3, 1, 10, 0)).message)
    print(ingest("expo", "stu-1", "gate-b", datetime(2026, 3, 1, 11, 30)).message)
    print(ingest("expo", "stu-1", "gate-a", datetime(2026, 3, 1, 13, 0)).message)

    sweep = container.lifecycle_controller.on_event_stopped("expo", datetime(2026, 3, 1, 14, 0))
    print(f"nullified {sweep.nullified_count} session(s), {sweep.nullified_seconds}s")

    report = container.query_service.get_student_report("expo", "stu-1", now=datetime(2026, 3, 1, 15, 0))
    print(report.summary)
    print(report.warning)


if __name__ == "__main__":
    main()
