"""
Shared fixtures for NutriThali tests.

Model replies are built from plain dicts so each test can tweak a
single field; the analysis client is always mocked.
"""

import io
import json
from typing import Any, Callable, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from nutrithali.application.meal.analysis_orchestrator import AnalysisOrchestrator
from nutrithali.domain.meal.analysis.models import (
    AnalysisResult,
    FoodItem,
    MacroNutrients,
    ModelTier,
)
from nutrithali.domain.meal.analysis.ports import IAnalysisClient, IImageCodec
from nutrithali.domain.meal.analysis.prompts import PromptBuilder
from nutrithali.infrastructure.persistence.in_memory_meal_store import InMemoryMealStore


# ═══════════════════════════════════════════════════════════
# REPLY BUILDERS
# ═══════════════════════════════════════════════════════════


def fenced(payload: Dict[str, Any]) -> str:
    """Wrap a payload the way the model usually does."""
    return "```json\n" + json.dumps(payload, ensure_ascii=False) + "\n```"


@pytest.fixture
def identify_payload() -> Dict[str, Any]:
    """Identification reply for a thali photo."""
    return {
        "estimatedPortionSize": "300g",
        "dishName": "Thali",
        "calories": 450,
        "macros": {"protein": 15, "carbs": 60, "fats": 14},
        "verdictEmoji": "✅",
        "briefExplanation": "Initial identification.",
        "diabeticFriendliness": "Moderate",
        "diabeticAdvice": "Pending analysis...",
        "portionSizeSuggestion": "Pending analysis...",
        "foodItems": [
            {"name": "Rice", "quantity": "150g"},
            {"name": "Dal", "quantity": "100g"},
            {"name": "Roti", "quantity": "2 pieces"},
        ],
    }


@pytest.fixture
def nutrition_payload() -> Dict[str, Any]:
    """Full nutrition reply for a thali."""
    return {
        "estimatedPortionSize": "300g",
        "dishName": "Thali",
        "calories": 620,
        "macros": {"protein": 22.5, "carbs": 88, "fats": 19},
        "verdictEmoji": "⚠️",
        "briefExplanation": "Carb heavy because of rice and rotis.",
        "diabeticFriendliness": "Low",
        "diabeticAdvice": "Swap half the rice for salad.",
        "portionSizeSuggestion": "1 roti and 75g rice",
        "foodItems": [],
    }


@pytest.fixture
def reply_for() -> Callable[..., str]:
    """Build a fenced reply from a payload with overrides."""

    def build(payload: Dict[str, Any], **overrides: Any) -> str:
        return fenced({**payload, **overrides})

    return build


# ═══════════════════════════════════════════════════════════
# DOMAIN MODEL FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def sample_result() -> AnalysisResult:
    """Fast-tier result for dal and rice."""
    return AnalysisResult(
        estimated_portion_size="150g Dal, 200g Rice",
        dish_name="Dal Chawal",
        calories=480,
        macros=MacroNutrients(protein=16, carbs=82, fats=9),
        verdict_emoji="✅",
        brief_explanation="Balanced comfort meal.",
        diabetic_friendliness="Moderate",
        diabetic_advice="Prefer brown rice.",
        portion_size_suggestion="150g rice",
        used_model=ModelTier.FAST,
        food_items=[
            FoodItem(name="Dal", quantity="150g"),
            FoodItem(name="Rice", quantity="200g"),
        ],
    )


@pytest.fixture
def photo_bytes() -> bytes:
    """Small real JPEG."""
    buffer = io.BytesIO()
    Image.new("RGB", (64, 48), (200, 120, 40)).save(buffer, format="JPEG")
    return buffer.getvalue()


# ═══════════════════════════════════════════════════════════
# COLLABORATOR MOCKS
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def fake_codec() -> MagicMock:
    """Image codec that never touches Pillow."""
    codec = MagicMock(spec=IImageCodec)
    codec.encode_for_transport.return_value = "aW1hZ2U="
    codec.compress_for_storage.return_value = b"compressed"
    return codec


@pytest.fixture
def prompts(fake_codec: MagicMock) -> PromptBuilder:
    return PromptBuilder(image_codec=fake_codec)


@pytest.fixture
def mock_client() -> AsyncMock:
    """Analysis client mock; set send.side_effect / return_value per test."""
    return AsyncMock(spec=IAnalysisClient)


@pytest.fixture
def store(fake_codec: MagicMock) -> InMemoryMealStore:
    return InMemoryMealStore(image_codec=fake_codec)


@pytest.fixture
def orchestrator(
    mock_client: AsyncMock, prompts: PromptBuilder, store: InMemoryMealStore
) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(client=mock_client, prompts=prompts, store=store)
