"""Recompute attendance summaries of one event from session history.

Usage:
    python scripts/rebuild_summaries.py EVENT_ID [--check]

With --check nothing is written; drifted fields are listed and the exit code is
1 when any exist.
"""

from __future__ import annotations

import argparse
import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.event_attendance.event_attendance.container import build_container


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Rebuild attendance summaries from session history")
    parser.add_argument("event_id")
    parser.add_argument("--check", action="store_true", help="report drift without writing")
    args = parser.parse_args(argv)

    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=dict(settings.DB_CONFIG))
    aggregator = container.aggregator

    with container.uow_factory() as uow:
        student_ids = sorted({s.student_id for s in uow.sessions.list_for_event(args.event_id)})

    drifted = 0
    for student_id in student_ids:
        with container.uow_factory() as uow:
            if args.check:
                for d in aggregator.verify(uow, args.event_id, student_id):
                    drifted += 1
                    print(f"DRIFT {student_id} {d.field}: stored={d.stored} expected={d.expected}")
            else:
                aggregator.rebuild(uow, args.event_id, student_id)

    if args.check:
        print(f"{drifted} drifted fields across {len(student_ids)} students of event {args.event_id}")
        return 1 if drifted else 0

    print(f"OK: rebuilt {len(student_ids)} summaries for event {args.event_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
