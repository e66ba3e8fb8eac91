"""
Domain models for meal persistence.

A saved meal keeps the analysis fields denormalized next to its
category and timestamp so daily totals need no join.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nutrithali.domain.meal.analysis.models import AnalysisResult, MacroNutrients
from nutrithali.domain.shared.value_objects import MealId


def local_time(moment: datetime) -> datetime:
    """
    Aware datetime for a moment; naive values are taken as local time.

    Example:
        >>> local_time(datetime(2024, 5, 1, 21, 30)).tzinfo is not None
        True
    """
    if moment.tzinfo is None or moment.utcoffset() is None:
        return moment.astimezone()
    return moment


class MealCategory(str, Enum):
    """Meal slot a saved meal is filed under."""

    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    DINNER = "Dinner"
    SNACKS = "Snacks"

    @property
    def time_based_hint(self) -> str:
        return _HINTS[self]

    @classmethod
    def suggest_for(cls, moment: datetime) -> MealCategory:
        """
        Default category for a meal logged at the given local time.

        Example:
            >>> MealCategory.suggest_for(datetime(2024, 5, 1, 8, 30))
            <MealCategory.BREAKFAST: 'Breakfast'>
        """
        hour = moment.hour
        if 5 <= hour < 11:
            return cls.BREAKFAST
        if 11 <= hour < 16:
            return cls.LUNCH
        if 18 <= hour < 23:
            return cls.DINNER
        return cls.SNACKS


_HINTS = {
    MealCategory.BREAKFAST: "Usually eaten between 6 AM - 10 AM",
    MealCategory.LUNCH: "Usually eaten between 12 PM - 2 PM",
    MealCategory.DINNER: "Usually eaten between 7 PM - 9 PM",
    MealCategory.SNACKS: "Light meals eaten between main meals",
}


class MealEntry(BaseModel):
    """
    Domain model for a saved meal.

    Attributes:
        id: Meal identifier
        timestamp: When the meal was logged
        category: Meal slot
        dish_name: Name of the dish
        calories: Energy in kcal
        protein: Protein in g
        carbs: Carbohydrates in g
        fats: Fat in g
        verdict_emoji: Health verdict glyph
        brief_explanation: Verdict explanation
        diabetic_friendliness: Raw friendliness label
        diabetic_advice: Advice for diabetics
        portion_size_suggestion: Recommended portion
        estimated_portion_size: Portion eaten
        image: Compressed JPEG bytes (optional)

    Example:
        >>> entry = MealEntry.from_result(result, MealCategory.LUNCH)
        >>> assert entry.calories == result.calories
    """

    model_config = ConfigDict(frozen=True)

    id: MealId = Field(default_factory=MealId.generate)
    timestamp: datetime = Field(default_factory=lambda: local_time(datetime.now()))
    category: MealCategory

    dish_name: str = Field(..., min_length=1)
    calories: float = Field(..., ge=0, description="Energy in kcal")
    protein: float = Field(..., ge=0, description="Protein in g")
    carbs: float = Field(..., ge=0, description="Carbohydrates in g")
    fats: float = Field(..., ge=0, description="Fat in g")

    verdict_emoji: str
    brief_explanation: str
    diabetic_friendliness: str
    diabetic_advice: str
    portion_size_suggestion: str
    estimated_portion_size: str

    image: Optional[bytes] = Field(default=None, repr=False)

    @field_validator("timestamp")
    @classmethod
    def attach_local_zone(cls, v: datetime) -> datetime:
        """Naive timestamps are local wall-clock time."""
        return local_time(v)

    @classmethod
    def from_result(
        cls,
        result: AnalysisResult,
        category: MealCategory,
        image: Optional[bytes] = None,
        timestamp: Optional[datetime] = None,
    ) -> MealEntry:
        """Build an entry from an analysis result."""
        fields = dict(
            category=category,
            dish_name=result.dish_name,
            calories=result.calories,
            protein=result.macros.protein,
            carbs=result.macros.carbs,
            fats=result.macros.fats,
            verdict_emoji=result.verdict_emoji.value,
            brief_explanation=result.brief_explanation,
            diabetic_friendliness=result.diabetic_friendliness,
            diabetic_advice=result.diabetic_advice,
            portion_size_suggestion=result.portion_size_suggestion,
            estimated_portion_size=result.estimated_portion_size,
            image=image,
        )
        if timestamp is not None:
            fields["timestamp"] = timestamp
        return cls(**fields)

    @property
    def day(self) -> date:
        """Calendar day in the zone the meal was logged in."""
        return self.timestamp.date()

    @property
    def macros(self) -> MacroNutrients:
        return MacroNutrients(protein=self.protein, carbs=self.carbs, fats=self.fats)


class DailySummary(BaseModel):
    """
    Totals for the meals of one day.

    Example:
        >>> summary = DailySummary.from_meals(date(2024, 5, 1), meals)
        >>> summary.meal_count
        3
    """

    model_config = ConfigDict(frozen=True)

    day: date
    meal_count: int = Field(0, ge=0)
    total_calories: float = Field(0.0, ge=0)
    total_protein: float = Field(0.0, ge=0)
    total_carbs: float = Field(0.0, ge=0)
    total_fats: float = Field(0.0, ge=0)

    @classmethod
    def from_meals(cls, day: date, meals: Iterable[MealEntry]) -> DailySummary:
        meals = list(meals)
        return cls(
            day=day,
            meal_count=len(meals),
            total_calories=sum(m.calories for m in meals),
            total_protein=sum(m.protein for m in meals),
            total_carbs=sum(m.carbs for m in meals),
            total_fats=sum(m.fats for m in meals),
        )
