from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Student:
    """Domain entity: Student.

    Note: Owned by the identity layer; the attendance engine only reads it.
    """

    student_id: str
    full_name: str
    roll_number: Optional[str] = None
    department: Optional[str] = None
    is_active: bool = True
