"""
Unit tests for InMemoryMealStore.
"""

from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import pytest

from nutrithali.domain.meal.analysis.models import AnalysisResult
from nutrithali.domain.meal.persistence.meal_store import IMealStore
from nutrithali.domain.meal.persistence.models import MealCategory
from nutrithali.domain.shared.errors import PersistenceFailureError
from nutrithali.domain.shared.value_objects import MealId
from nutrithali.infrastructure.persistence.in_memory_meal_store import InMemoryMealStore


def at(day: int, hour: int, month: int = 5) -> datetime:
    return datetime(2024, month, day, hour, 0, tzinfo=timezone.utc)


class TestSave:
    async def test_implements_port(self, store: InMemoryMealStore) -> None:
        assert isinstance(store, IMealStore)

    async def test_save_compresses_image(
        self, store: InMemoryMealStore, fake_codec: MagicMock, sample_result: AnalysisResult
    ) -> None:
        entry = await store.save(b"raw-photo", sample_result, MealCategory.LUNCH)

        fake_codec.compress_for_storage.assert_called_once_with(b"raw-photo")
        assert entry.image == b"compressed"
        assert len(store) == 1

    async def test_save_without_image(
        self, store: InMemoryMealStore, fake_codec: MagicMock, sample_result: AnalysisResult
    ) -> None:
        entry = await store.save(None, sample_result, MealCategory.SNACKS)

        fake_codec.compress_for_storage.assert_not_called()
        assert entry.image is None

    async def test_compression_failure(
        self, store: InMemoryMealStore, fake_codec: MagicMock, sample_result: AnalysisResult
    ) -> None:
        fake_codec.compress_for_storage.side_effect = ValueError("corrupt")

        with pytest.raises(PersistenceFailureError) as exc_info:
            await store.save(b"raw-photo", sample_result, MealCategory.LUNCH)

        assert "compress" in exc_info.value.reason
        assert len(store) == 0


class TestQueries:
    @pytest.fixture
    async def seeded(self, store: InMemoryMealStore, sample_result: AnalysisResult) -> InMemoryMealStore:
        await store.save(None, sample_result.with_dish_name("Dinner Dal"), MealCategory.DINNER, at(1, 20))
        await store.save(None, sample_result.with_dish_name("Poha"), MealCategory.BREAKFAST, at(1, 8))
        await store.save(None, sample_result.with_dish_name("Thali"), MealCategory.LUNCH, at(1, 13))
        await store.save(None, sample_result.with_dish_name("Upma"), MealCategory.BREAKFAST, at(3, 8))
        await store.save(None, sample_result.with_dish_name("Old"), MealCategory.LUNCH, at(28, 13, month=4))
        return store

    async def test_fetch_for_day_is_ordered(self, seeded: InMemoryMealStore) -> None:
        meals = await seeded.fetch_for_day(date(2024, 5, 1))

        assert [m.dish_name for m in meals] == ["Poha", "Thali", "Dinner Dal"]

    async def test_fetch_for_range_is_half_open(self, seeded: InMemoryMealStore) -> None:
        meals = await seeded.fetch_for_range(at(1, 13), at(3, 8))

        assert [m.dish_name for m in meals] == ["Thali", "Dinner Dal"]

    async def test_fetch_for_range_with_naive_bounds(
        self, store: InMemoryMealStore, sample_result: AnalysisResult
    ) -> None:
        entry = await store.save(None, sample_result, MealCategory.LUNCH)
        await store.save(None, sample_result, MealCategory.DINNER, datetime(2024, 5, 1, 21, 30))

        meals = await store.fetch_for_range(datetime(2000, 1, 1), datetime(2100, 1, 1))
        evening = await store.fetch_for_range(datetime(2024, 5, 1, 21), datetime(2024, 5, 2))

        assert len(meals) == 2
        assert entry.id in {m.id for m in meals}
        assert [m.category for m in evening] == [MealCategory.DINNER]
        assert await store.fetch_for_day(date(2024, 5, 1)) == evening

    async def test_days_with_meals(self, seeded: InMemoryMealStore) -> None:
        assert await seeded.days_with_meals(2024, 5) == [date(2024, 5, 1), date(2024, 5, 3)]
        assert await seeded.days_with_meals(2024, 4) == [date(2024, 4, 28)]
        assert await seeded.days_with_meals(2024, 6) == []

    async def test_returned_entries_are_copies(self, seeded: InMemoryMealStore) -> None:
        first = (await seeded.fetch_for_day(date(2024, 5, 3)))[0]
        second = (await seeded.fetch_for_day(date(2024, 5, 3)))[0]

        assert first == second
        assert first is not second


class TestEdits:
    async def test_delete(self, store: InMemoryMealStore, sample_result: AnalysisResult) -> None:
        entry = await store.save(None, sample_result, MealCategory.LUNCH, at(2, 13))

        await store.delete(entry.id)

        assert await store.fetch_for_day(date(2024, 5, 2)) == []

    async def test_delete_unknown(self, store: InMemoryMealStore) -> None:
        with pytest.raises(PersistenceFailureError):
            await store.delete(MealId.generate())

    async def test_update_category(self, store: InMemoryMealStore, sample_result: AnalysisResult) -> None:
        entry = await store.save(None, sample_result, MealCategory.LUNCH, at(2, 16))

        updated = await store.update_category(entry.id, MealCategory.SNACKS)

        assert updated.category == MealCategory.SNACKS
        stored = await store.fetch_for_day(date(2024, 5, 2))
        assert stored[0].category == MealCategory.SNACKS

    async def test_update_unknown(self, store: InMemoryMealStore) -> None:
        with pytest.raises(PersistenceFailureError):
            await store.update_category(MealId.generate(), MealCategory.DINNER)
