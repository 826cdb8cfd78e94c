"""
Data models for extraction results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(slots=True, frozen=True)
class SubjectRecord:
    """One row of the gradesheet table, kept exactly as the site prints it."""

    subject_name: str
    credit_hours: str
    grade: str
    grade_point: str
    final_grade: str
    remarks: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "subject": self.subject_name,
            "creditHours": self.credit_hours,
            "grade": self.grade,
            "gradePoint": self.grade_point,
            "finalGrade": self.final_grade,
            "remarks": self.remarks,
        }


@dataclass(slots=True, frozen=True)
class ResultRecord:
    """Normalized result for one symbol number."""

    symbol: str
    dob: str
    gpa: str | None
    subjects: tuple[SubjectRecord, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "dob": self.dob,
            "gpa": self.gpa,
            "subjects": [subject.to_dict() for subject in self.subjects],
        }
