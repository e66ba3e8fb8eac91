"""
Domain models for food analysis.

Typed shapes of what the generative model returns: macros, food items
and the full analysis result, plus the model tier that produced it.
"""

from __future__ import annotations

import re
import uuid
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_QUANTITY = "Standard serving"


class ModelTier(str, Enum):
    """Tier of the remote model used for a call."""

    FAST = "fast"  # Lower latency and cost
    DETAILED = "detailed"  # Higher fidelity, used for escalation

    @property
    def display_name(self) -> str:
        """Label shown next to a result."""
        return "Flash (Fast)" if self is ModelTier.FAST else "Pro (Detailed)"


class VerdictGlyph(str, Enum):
    """Glyph pair the model uses for the health verdict."""

    HEALTHY = "✅"
    CAUTION = "⚠️"


class Verdict(str, Enum):
    """Health verdict derived from the verdict glyph."""

    HEALTHY = "Healthy"
    CAUTION = "Caution"


class DiabeticFriendliness(str, Enum):
    """
    Diabetic friendliness bucket.

    The model is asked for one of High/Moderate/Low. Anything else is
    accepted at decode time and lands in UNKNOWN.
    """

    HIGH = "High"
    MODERATE = "Moderate"
    LOW = "Low"
    UNKNOWN = "Unknown"

    @classmethod
    def from_label(cls, label: Optional[str]) -> DiabeticFriendliness:
        """Map a free-form label to a bucket (case-insensitive)."""
        normalized = (label or "").strip().lower()
        for member in (cls.HIGH, cls.MODERATE, cls.LOW):
            if member.value.lower() == normalized:
                return member
        return cls.UNKNOWN


class MacroNutrients(BaseModel):
    """
    Macronutrient grams for the analysed portion.

    Example:
        >>> macros = MacroNutrients(protein=12.0, carbs=45.5, fats=8.0)
        >>> assert macros.protein == 12.0
    """

    model_config = ConfigDict(frozen=True)

    protein: float = Field(..., ge=0, description="Protein in g")
    carbs: float = Field(..., ge=0, description="Carbohydrates in g")
    fats: float = Field(..., ge=0, description="Total fat in g")


class FoodItem(BaseModel):
    """
    Single component of a meal with its quantity.

    Created by decoding a model response or by the user in the portion
    editor. Never stored on its own.

    Example:
        >>> item = FoodItem(name="Dal", quantity="150g")
        >>> assert item.describe() == "150g Dal"
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="Opaque identifier")
    name: str = Field(..., description="Food name")
    quantity: str = Field(DEFAULT_QUANTITY, description="Free-form quantity")

    def describe(self) -> str:
        """Portion description fragment, quantity first."""
        return f"{self.quantity} {self.name}"


class AnalysisResult(BaseModel):
    """
    Complete nutrition analysis for one meal.

    Immutable: edits produce a new record through the with_* helpers.
    Field aliases follow the camelCase keys of the model's JSON reply.

    Attributes:
        estimated_portion_size: Portion text (e.g. "300g", "2 rotis + 150g dal")
        dish_name: Name of the dish
        calories: Energy in kcal
        macros: Protein/carbs/fats grams
        verdict_emoji: Health verdict glyph
        brief_explanation: One sentence verdict explanation
        diabetic_friendliness: Raw label from the model
        diabetic_advice: Advice for diabetics
        portion_size_suggestion: Recommended portion
        used_model: Tier that produced this result
        food_items: Optional component list

    Example:
        >>> result = AnalysisResult(
        ...     estimatedPortionSize="300g",
        ...     dishName="Thali",
        ...     calories=450,
        ...     macros=MacroNutrients(protein=15, carbs=60, fats=14),
        ...     verdictEmoji="✅",
        ...     briefExplanation="Balanced plate.",
        ...     diabeticFriendliness="Moderate",
        ...     diabeticAdvice="Go easy on the rice.",
        ...     portionSizeSuggestion="Half the rice.",
        ...     usedModel=ModelTier.FAST,
        ... )
        >>> assert result.can_improve
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    estimated_portion_size: str = Field(..., alias="estimatedPortionSize")
    dish_name: str = Field(..., alias="dishName")
    calories: float = Field(..., ge=0, description="Energy in kcal")
    macros: MacroNutrients
    verdict_emoji: VerdictGlyph = Field(..., alias="verdictEmoji")
    brief_explanation: str = Field(..., alias="briefExplanation")
    diabetic_friendliness: str = Field(..., alias="diabeticFriendliness")
    diabetic_advice: str = Field(..., alias="diabeticAdvice")
    portion_size_suggestion: str = Field(..., alias="portionSizeSuggestion")
    used_model: ModelTier = Field(ModelTier.FAST, alias="usedModel")
    food_items: Optional[List[FoodItem]] = Field(None, alias="foodItems")

    @field_validator("verdict_emoji", mode="before")
    @classmethod
    def normalize_glyph(cls, v: object) -> object:
        """Anything other than the healthy glyph reads as caution."""
        if isinstance(v, VerdictGlyph):
            return v
        if isinstance(v, str) and v.strip() == VerdictGlyph.HEALTHY.value:
            return VerdictGlyph.HEALTHY
        return VerdictGlyph.CAUTION

    @property
    def verdict(self) -> Verdict:
        """Healthy iff the verdict glyph is the healthy one."""
        return Verdict.HEALTHY if self.verdict_emoji is VerdictGlyph.HEALTHY else Verdict.CAUTION

    @property
    def can_improve(self) -> bool:
        """Only fast-tier results are eligible for escalation."""
        return self.used_model is ModelTier.FAST

    @property
    def friendliness_level(self) -> DiabeticFriendliness:
        """Bucketed diabetic friendliness, UNKNOWN for unexpected labels."""
        return DiabeticFriendliness.from_label(self.diabetic_friendliness)

    def portion_items(self) -> List[FoodItem]:
        """
        Editable portion list.

        Returns the decoded food items, or splits the portion text
        when the model returned none.

        Example:
            >>> [i.describe() for i in result.portion_items()]  # "2 rotis + 150g dal"
            ['2 Rotis', '150g Dal']
        """
        if self.food_items:
            return list(self.food_items)
        return parse_portion_size(self.estimated_portion_size)

    def with_dish_name(self, dish_name: str) -> AnalysisResult:
        """Copy with dish name replaced."""
        return self.model_copy(update={"dish_name": dish_name})

    def with_portions(self, items: List[FoodItem]) -> AnalysisResult:
        """Copy with food items replaced and portion text recomputed."""
        return self.model_copy(
            update={
                "food_items": list(items),
                "estimated_portion_size": describe_portions(items),
            }
        )


def describe_portions(items: List[FoodItem]) -> str:
    """Join items as "100g Rice, 150g Dal"."""
    return ", ".join(item.describe() for item in items)


_PORTION_SEPARATORS = re.compile(r"[+,]")


def parse_portion_size(portion: str) -> List[FoodItem]:
    """
    Best-effort split of a portion string into food items.

    Pieces are separated by "+" or ",". The first word of a piece is
    the quantity and the rest the name; single-word pieces become
    "Item N" with the piece as quantity.

    Example:
        >>> [i.describe() for i in parse_portion_size("2 rotis + 150g dal")]
        ['2 Rotis', '150g Dal']
    """
    items: List[FoodItem] = []
    for index, piece in enumerate(_PORTION_SEPARATORS.split(portion or "")):
        trimmed = piece.strip()
        if not trimmed:
            continue
        words = trimmed.split()
        if len(words) >= 2:
            items.append(FoodItem(name=" ".join(words[1:]).title(), quantity=words[0]))
        else:
            items.append(FoodItem(name=f"Item {index + 1}", quantity=trimmed))
    return items
