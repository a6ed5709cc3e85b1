"""
Item Domain Model Module

This module defines the item entity served by the item bank.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

MIN_DIFFICULTY = 100
MAX_DIFFICULTY = 350


@dataclass(frozen=True)
class Item:
    """
    A multiple-choice assessment item.

    Items are immutable once created; the assessment core only reads them.

    Attributes:
        id: Unique identifier for the item
        subject_id: Subject the item belongs to
        text: The question text
        options: Answer options (at least two)
        correct_option_index: Index of the correct answer in ``options``
        difficulty: Difficulty on the RIT scale, 100 to 350 inclusive
        grade_id: Grade the item is restricted to, or None for every grade
    """
    id: str
    subject_id: str
    text: str
    options: Tuple[str, ...]
    correct_option_index: int
    difficulty: int
    grade_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        # Lists are accepted from callers and stored as a tuple
        if not isinstance(self.options, tuple):
            object.__setattr__(self, "options", tuple(self.options))
        if len(self.options) < 2:
            raise ValueError(f"Item {self.id} needs at least two options")
        if not 0 <= self.correct_option_index < len(self.options):
            raise ValueError(
                f"Item {self.id} correct option index {self.correct_option_index} "
                f"is outside its {len(self.options)} options"
            )
        if not MIN_DIFFICULTY <= self.difficulty <= MAX_DIFFICULTY:
            raise ValueError(
                f"Item {self.id} difficulty {self.difficulty} outside "
                f"[{MIN_DIFFICULTY}, {MAX_DIFFICULTY}]"
            )

    def is_available_to(self, grade_id: Optional[str]) -> bool:
        """Whether a student in ``grade_id`` may be shown this item."""
        return grade_id is None or self.grade_id is None or self.grade_id == grade_id

    def sanitized(self) -> Dict[str, Any]:
        """
        The client-facing view of the item.

        ``correct_option_index`` is deliberately left out.
        """
        return {
            "id": self.id,
            "text": self.text,
            "options": list(self.options),
            "difficulty": self.difficulty,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "grade_id": self.grade_id,
            "text": self.text,
            "options": list(self.options),
            "correct_option_index": self.correct_option_index,
            "difficulty": self.difficulty,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Item':
        return cls(
            id=data["id"],
            subject_id=data["subject_id"],
            grade_id=data.get("grade_id"),
            text=data["text"],
            options=tuple(data["options"]),
            correct_option_index=data["correct_option_index"],
            difficulty=data["difficulty"],
            metadata=data.get("metadata") or {},
        )
