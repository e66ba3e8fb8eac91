"""
Meal History Service.

Read side over the meal store: per-day meal lists with totals and
calendar markers for a month, plus the edits available on saved meals.
"""

from datetime import date
from typing import List, Set

import structlog

from nutrithali.domain.meal.persistence.meal_store import IMealStore
from nutrithali.domain.meal.persistence.models import (
    DailySummary,
    MealCategory,
    MealEntry,
)
from nutrithali.domain.shared.value_objects import MealId

logger = structlog.get_logger(__name__)


class MealHistoryService:
    """
    History queries for saved meals.

    Example:
        >>> history = MealHistoryService(store)
        >>> summary = await history.daily_summary(date.today())
        >>> print(f"{summary.meal_count} meals, {summary.total_calories} kcal")
    """

    def __init__(self, store: IMealStore):
        self.store = store

    async def meals_for_day(self, day: date) -> List[MealEntry]:
        return await self.store.fetch_for_day(day)

    async def daily_summary(self, day: date) -> DailySummary:
        """Meal count and macro totals for one day."""
        meals = await self.store.fetch_for_day(day)
        return DailySummary.from_meals(day, meals)

    async def month_markers(self, year: int, month: int) -> Set[date]:
        """Days of the month that have at least one meal."""
        return set(await self.store.days_with_meals(year, month))

    async def delete_meal(self, meal_id: MealId) -> None:
        await self.store.delete(meal_id)
        logger.info("Meal removed from history", meal_id=str(meal_id))

    async def recategorize(self, meal_id: MealId, category: MealCategory) -> MealEntry:
        return await self.store.update_category(meal_id, category)
