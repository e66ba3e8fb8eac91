"""In-memory meal store implementation.

Provides an in-memory implementation of the IMealStore port.
Uses a dictionary for storage with no external dependencies.
"""

from calendar import monthrange
from copy import deepcopy
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional

import structlog

from nutrithali.domain.meal.analysis.models import AnalysisResult
from nutrithali.domain.meal.analysis.ports import IImageCodec
from nutrithali.domain.meal.persistence.models import MealCategory, MealEntry, local_time
from nutrithali.domain.shared.errors import PersistenceFailureError
from nutrithali.domain.shared.value_objects import MealId

logger = structlog.get_logger(__name__)


class InMemoryMealStore:
    """
    In-memory implementation of IMealStore port.

    Thread safety: NOT thread-safe (single event loop only)
    Persistence: Data lost on process restart (in-memory only)

    Example:
        >>> store = InMemoryMealStore(image_codec=PillowImageCodec())
        >>> entry = await store.save(photo, result, MealCategory.DINNER)
        >>> assert await store.fetch_for_day(entry.day)
    """

    def __init__(self, image_codec: Optional[IImageCodec] = None) -> None:
        """
        Initialize store with empty storage.

        Args:
            image_codec: Codec used to compress images; images are
                dropped when none is given
        """
        self.image_codec = image_codec
        self._storage: Dict[MealId, MealEntry] = {}

    async def save(
        self,
        image: Optional[bytes],
        result: AnalysisResult,
        category: MealCategory,
        timestamp: Optional[datetime] = None,
    ) -> MealEntry:
        compressed: Optional[bytes] = None
        if image is not None and self.image_codec is not None:
            try:
                compressed = self.image_codec.compress_for_storage(image)
            except ValueError as e:
                raise PersistenceFailureError("Failed to compress image for storage") from e

        try:
            entry = MealEntry.from_result(
                result, category, image=compressed, timestamp=timestamp
            )
        except ValueError as e:
            raise PersistenceFailureError(str(e)) from e

        # Store deep copy to prevent external modifications
        self._storage[entry.id] = deepcopy(entry)
        logger.info(
            "Meal saved",
            meal_id=str(entry.id),
            category=category.value,
            calories=entry.calories,
        )
        return entry

    async def fetch_for_day(self, day: date) -> List[MealEntry]:
        return self._select(lambda m: m.day == day)

    async def fetch_for_range(self, start: datetime, end: datetime) -> List[MealEntry]:
        """Meals in [start, end). Naive bounds are local time."""
        lower, upper = local_time(start), local_time(end)
        return self._select(lambda m: lower <= m.timestamp < upper)

    async def delete(self, meal_id: MealId) -> None:
        if meal_id not in self._storage:
            raise PersistenceFailureError(f"Meal {meal_id} not found")
        del self._storage[meal_id]
        logger.info("Meal deleted", meal_id=str(meal_id))

    async def update_category(self, meal_id: MealId, category: MealCategory) -> MealEntry:
        entry = self._storage.get(meal_id)
        if entry is None:
            raise PersistenceFailureError(f"Meal {meal_id} not found")
        updated = entry.model_copy(update={"category": category})
        self._storage[meal_id] = updated
        return deepcopy(updated)

    async def days_with_meals(self, year: int, month: int) -> List[date]:
        first = date(year, month, 1)
        last = first + timedelta(days=monthrange(year, month)[1] - 1)
        days = {m.day for m in self._storage.values() if first <= m.day <= last}
        return sorted(days)

    def _select(self, predicate: Callable[[MealEntry], bool]) -> List[MealEntry]:
        """Matching meals, oldest first, as deep copies."""
        meals = [m for m in self._storage.values() if predicate(m)]
        meals.sort(key=lambda m: m.timestamp)
        return [deepcopy(m) for m in meals]

    def __len__(self) -> int:
        return len(self._storage)
