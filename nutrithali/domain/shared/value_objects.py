"""
Shared value objects.

Immutable, validated domain primitives.
Following DDD value object pattern.
"""

from __future__ import annotations

import uuid
from pydantic import BaseModel, Field, field_validator, ConfigDict


class MealId(BaseModel):
    """
    Meal ID value object.

    Identifies a stored meal entry.

    Example:
        >>> meal_id = MealId.generate()
        >>> assert MealId.from_string(str(meal_id)) == meal_id
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., min_length=1, description="Meal identifier")

    @field_validator("value")
    @classmethod
    def not_empty(cls, v: str) -> str:
        """Ensure not empty or whitespace."""
        if not v.strip():
            raise ValueError("MealId cannot be empty or whitespace")
        return v.strip()

    def __str__(self) -> str:
        """String representation."""
        return self.value

    def __repr__(self) -> str:
        """Debug representation."""
        return f"MealId('{self.value}')"

    def __hash__(self) -> int:
        """Allow use as dict key."""
        return hash(self.value)

    @classmethod
    def generate(cls) -> MealId:
        """Generate new meal ID from a random UUID."""
        return cls(value=str(uuid.uuid4()))

    @classmethod
    def from_string(cls, s: str) -> MealId:
        """Create from string."""
        return cls(value=s)
