from __future__ import annotations

from typing import Optional, Protocol

from .model import Student


class StudentRepository(Protocol):
    def get(self, student_id: str) -> Optional[Student]:
        raise NotImplementedError
