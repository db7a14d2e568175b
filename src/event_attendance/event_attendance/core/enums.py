from __future__ import annotations

from enum import Enum


class SessionStatus(str, Enum):
    """Lifecycle of a single attendance session."""

    CHECKED_IN = "checked-in"
    CHECKED_OUT = "checked-out"
    AUTO_CHECKOUT = "auto-checkout"


class SummaryStatus(str, Enum):
    """Current presence of a student at an event, as shown on dashboards."""

    CHECKED_IN = "checked-in"
    CHECKED_OUT = "checked-out"


class EventStatus(str, Enum):
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    STOPPED = "stopped"


class ScanAction(str, Enum):
    CHECK_IN = "check-in"
    CHECK_OUT = "check-out"
    REJECTED = "rejected"


class ScanOutcomeKind(str, Enum):
    """Typed result of a scan; rejections are values, not exceptions."""

    OPENED = "opened"
    CLOSED = "closed"
    NOT_FOUND = "not-found"
    EVENT_STOPPED = "event-stopped"
    EVENT_NOT_STARTED = "event-not-started"
    STUDENT_INACTIVE = "student-inactive"
    DUPLICATE = "duplicate"


class LockMode(str, Enum):
    """Row lock taken by a repository read inside a unit of work."""

    NONE = "none"
    SHARE = "share"
    UPDATE = "update"


class StorageBackend(str, Enum):
    MYSQL = "mysql"
    MEMORY = "memory"
