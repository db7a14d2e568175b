from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import parse_iso_datetime, to_utc_naive, utc_now
from ..common.validators import optional_text, require_max_length, require_non_empty
from ..core.exceptions import ValidationError
from ..sessions.service import AttendanceSessionManager, ScanOutcome
from .model import ScanFact

MAX_ID_LENGTH = 64


class ScanIngestor:
    """Entry point for raw gate scans.

    Stateless: validates and normalizes the fact, then hands it to the
    session manager. Timestamps are stored as naive UTC; a scan without one is
    stamped by the server.
    """

    def __init__(self, sessions: AttendanceSessionManager, *, clock: Callable[[], datetime] = utc_now):
        self._sessions = sessions
        self._clock = clock

    def normalize(
        self,
        *,
        event_id: object,
        student_id: object,
        gate: object,
        timestamp: object = None,
        scanned_by: object = None,
    ) -> ScanFact:
        event_id_s = require_max_length(require_non_empty(event_id, "event_id"), "event_id", MAX_ID_LENGTH)
        student_id_s = require_max_length(require_non_empty(student_id, "student_id"), "student_id", MAX_ID_LENGTH)
        gate_s = require_max_length(require_non_empty(gate, "gate"), "gate", MAX_ID_LENGTH)
        scanned_by_s = optional_text(scanned_by)

        return ScanFact(
            event_id=event_id_s,
            student_id=student_id_s,
            gate=gate_s,
            timestamp=self._parse_timestamp(timestamp),
            scanned_by=require_max_length(scanned_by_s, "scanned_by", MAX_ID_LENGTH) if scanned_by_s else None,
        )

    def _parse_timestamp(self, value: object) -> datetime:
        if value is None or (isinstance(value, str) and not value.strip()):
            return self._clock()
        if isinstance(value, datetime):
            return to_utc_naive(value)
        if isinstance(value, str):
            try:
                return parse_iso_datetime(value)
            except ValueError:
                raise ValidationError("timestamp must be an ISO-8601 datetime")
        raise ValidationError("timestamp must be an ISO-8601 datetime")

    def ingest(self, fact: ScanFact) -> ScanOutcome:
        return self._sessions.record_scan(
            fact.event_id,
            fact.student_id,
            fact.gate,
            fact.timestamp,
            scanned_by=fact.scanned_by,
        )

    def record_scan(
        self,
        event_id: object,
        student_id: object,
        gate: object,
        timestamp: object = None,
        *,
        scanned_by: Optional[object] = None,
    ) -> ScanOutcome:
        fact = self.normalize(
            event_id=event_id,
            student_id=student_id,
            gate=gate,
            timestamp=timestamp,
            scanned_by=scanned_by,
        )
        return self.ingest(fact)
