from __future__ import annotations

from typing import Optional

from ..database.mysql_base import fetchone
from .model import Student
from .repository import StudentRepository


class MySQLStudentRepository(StudentRepository):
    def __init__(self, cur):
        self._cur = cur

    def get(self, student_id: str) -> Optional[Student]:
        self._cur.execute(
            """
            SELECT student_id, full_name, roll_number, department, is_active
            FROM students
            WHERE student_id=%s
            """,
            (student_id,),
        )
        row = fetchone(self._cur)
        if not row:
            return None
        return Student(
            student_id=str(row["student_id"]),
            full_name=row["full_name"],
            roll_number=row.get("roll_number"),
            department=row.get("department"),
            is_active=bool(row.get("is_active", True)),
        )
