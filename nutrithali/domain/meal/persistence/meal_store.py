"""
Meal store interface.

Protocol for durable storage of confirmed meals.
"""

from datetime import date, datetime
from typing import List, Optional, Protocol, runtime_checkable

from nutrithali.domain.meal.analysis.models import AnalysisResult
from nutrithali.domain.meal.persistence.models import MealCategory, MealEntry
from nutrithali.domain.shared.value_objects import MealId


@runtime_checkable
class IMealStore(Protocol):
    """
    Storage interface for saved meals.

    Implementations must provide:
    - Image compression before storing (when an image is given)
    - Day and range queries ordered by timestamp ascending
    - PersistenceFailureError on any write failure

    Design Pattern: Repository Pattern + Protocol (Dependency Injection)

    Example:
        >>> store = InMemoryMealStore(image_codec=PillowImageCodec())
        >>> entry = await store.save(image, result, MealCategory.LUNCH)
        >>> meals = await store.fetch_for_day(entry.day)
        >>> assert meals[0].id == entry.id
    """

    async def save(
        self,
        image: Optional[bytes],
        result: AnalysisResult,
        category: MealCategory,
    ) -> MealEntry:
        """
        Persist a confirmed analysis.

        Args:
            image: Source image, or None for description-based meals
            result: Final analysis result
            category: Meal slot

        Returns:
            The stored entry

        Raises:
            PersistenceFailureError: If compression or storage fails
        """
        ...

    async def fetch_for_day(self, day: date) -> List[MealEntry]:
        """Meals logged on a calendar day, oldest first."""
        ...

    async def fetch_for_range(self, start: datetime, end: datetime) -> List[MealEntry]:
        """Meals with start <= timestamp < end, oldest first. Naive bounds are local time."""
        ...

    async def delete(self, meal_id: MealId) -> None:
        """
        Delete a meal.

        Raises:
            PersistenceFailureError: If the meal does not exist
        """
        ...

    async def update_category(self, meal_id: MealId, category: MealCategory) -> MealEntry:
        """
        Move a meal to another category.

        Raises:
            PersistenceFailureError: If the meal does not exist
        """
        ...

    async def days_with_meals(self, year: int, month: int) -> List[date]:
        """Distinct days of the month with at least one meal, ascending."""
        ...
