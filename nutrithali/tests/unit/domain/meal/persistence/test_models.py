"""
Unit tests for persistence domain models.
"""

from datetime import date, datetime, timezone

import pytest

from nutrithali.domain.meal.analysis.models import AnalysisResult
from nutrithali.domain.meal.persistence.models import (
    DailySummary,
    MealCategory,
    MealEntry,
)


class TestMealCategory:
    @pytest.mark.parametrize(
        "hour, expected",
        [
            (7, MealCategory.BREAKFAST),
            (10, MealCategory.BREAKFAST),
            (13, MealCategory.LUNCH),
            (17, MealCategory.SNACKS),
            (20, MealCategory.DINNER),
            (2, MealCategory.SNACKS),
        ],
    )
    def test_suggest_for_hour(self, hour: int, expected: MealCategory) -> None:
        assert MealCategory.suggest_for(datetime(2024, 5, 1, hour, 15)) == expected

    def test_every_category_has_hint(self) -> None:
        for category in MealCategory:
            assert category.time_based_hint

        assert "6 AM" in MealCategory.BREAKFAST.time_based_hint


class TestMealEntry:
    def test_from_result_copies_analysis(self, sample_result: AnalysisResult) -> None:
        entry = MealEntry.from_result(sample_result, MealCategory.LUNCH, image=b"jpeg")

        assert entry.dish_name == "Dal Chawal"
        assert entry.calories == 480
        assert entry.protein == 16
        assert entry.verdict_emoji == "✅"
        assert entry.estimated_portion_size == "150g Dal, 200g Rice"
        assert entry.category == MealCategory.LUNCH
        assert entry.image == b"jpeg"
        assert entry.macros == sample_result.macros

    def test_timestamp_defaults_to_local_now(self, sample_result: AnalysisResult) -> None:
        entry = MealEntry.from_result(sample_result, MealCategory.SNACKS)

        assert entry.timestamp.tzinfo is not None
        assert entry.timestamp.utcoffset() == datetime.now().astimezone().utcoffset()

    def test_naive_timestamp_is_local_wall_clock(self, sample_result: AnalysisResult) -> None:
        late_dinner = datetime(2024, 5, 1, 21, 30)

        entry = MealEntry.from_result(sample_result, MealCategory.DINNER, timestamp=late_dinner)

        assert entry.timestamp.tzinfo is not None
        assert entry.timestamp.replace(tzinfo=None) == late_dinner
        assert entry.day == date(2024, 5, 1)
        assert MealCategory.suggest_for(entry.timestamp) == MealCategory.DINNER

    def test_explicit_timestamp(self, sample_result: AnalysisResult) -> None:
        moment = datetime(2024, 5, 1, 13, 0, tzinfo=timezone.utc)

        entry = MealEntry.from_result(sample_result, MealCategory.LUNCH, timestamp=moment)

        assert entry.day == date(2024, 5, 1)

    def test_ids_are_unique(self, sample_result: AnalysisResult) -> None:
        first = MealEntry.from_result(sample_result, MealCategory.LUNCH)
        second = MealEntry.from_result(sample_result, MealCategory.LUNCH)

        assert first.id != second.id


class TestDailySummary:
    def test_totals(self, sample_result: AnalysisResult) -> None:
        meals = [
            MealEntry.from_result(sample_result, MealCategory.BREAKFAST),
            MealEntry.from_result(sample_result.model_copy(update={"calories": 120}), MealCategory.SNACKS),
        ]

        summary = DailySummary.from_meals(date(2024, 5, 1), meals)

        assert summary.meal_count == 2
        assert summary.total_calories == 600
        assert summary.total_protein == 32
        assert summary.total_carbs == 164
        assert summary.total_fats == 18

    def test_empty_day(self) -> None:
        summary = DailySummary.from_meals(date(2024, 5, 1), [])

        assert summary.meal_count == 0
        assert summary.total_calories == 0
