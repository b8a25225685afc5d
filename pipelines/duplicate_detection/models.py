"""
Data models for duplicate detection.

Contains:
- CaseProfile dataclass (the comparable fields of one case)
- Candidate dataclass (a scored ordered pair above threshold)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional


@dataclass(frozen=True)
class CaseProfile:
    """
    Comparable view of a case record.

    None means "not recorded" and excludes the factor from scoring.
    """
    id: str
    full_name: Optional[str] = None
    missing_date: Optional[datetime] = None
    province: Optional[str] = None
    age: Optional[int] = None

    @classmethod
    def from_record(cls, record) -> "CaseProfile":
        return cls(
            id=record.id,
            full_name=record.full_name,
            missing_date=record.missing_date,
            province=record.province,
            age=record.age,
        )


@dataclass
class Candidate:
    """An ordered pair whose score met the threshold."""
    first_case_id: str
    second_case_id: str
    score: float
    factors: Dict[str, float] = field(default_factory=dict)
    explanation: str = ""

    @property
    def key(self):
        return (self.first_case_id, self.second_case_id)

    def reversed_key(self):
        return (self.second_case_id, self.first_case_id)
