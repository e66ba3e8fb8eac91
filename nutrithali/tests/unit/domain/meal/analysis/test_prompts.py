"""
Unit tests for PromptBuilder.
"""

import json
from unittest.mock import MagicMock

import pytest

from nutrithali.domain.meal.analysis.decoding import REQUIRED_KEYS
from nutrithali.domain.meal.analysis.models import AnalysisResult, FoodItem
from nutrithali.domain.meal.analysis.prompts import (
    AUTHORITATIVE_SOURCES,
    HIDDEN_CALORIES_RULE,
    PromptBuilder,
)
from nutrithali.domain.meal.analysis.requests import AnalysisIntent, AnalysisRequest

IMAGE = b"\xff\xd8fake-jpeg"


@pytest.fixture
def all_requests(prompts: PromptBuilder, sample_result: AnalysisResult) -> list:
    return [
        prompts.identify(IMAGE),
        prompts.nutrition_from_name("Dal Tadka", "200g"),
        prompts.nutrition_from_description("2 rotis with dal"),
        prompts.nutrition_from_portions(sample_result.portion_items()),
        prompts.improve(IMAGE, sample_result),
    ]


class TestEveryPrompt:
    """Properties shared by every intent."""

    def test_states_exact_json_shape(self, all_requests: list) -> None:
        for request in all_requests:
            for key in REQUIRED_KEYS:
                assert f'"{key}"' in request.prompt, (request.intent, key)
            assert '"foodItems"' in request.prompt

    def test_accounts_for_hidden_calories(self, all_requests: list) -> None:
        for request in all_requests:
            assert HIDDEN_CALORIES_RULE in request.prompt, request.intent

    def test_requests_json_response(self, all_requests: list) -> None:
        for request in all_requests:
            body = request.to_request_body()
            assert body["generationConfig"] == {"response_mime_type": "application/json"}

    def test_deterministic(self, prompts: PromptBuilder) -> None:
        first = prompts.nutrition_from_name("Poha", "1 plate")
        second = prompts.nutrition_from_name("Poha", "1 plate")

        assert first == second


class TestIntents:
    """Per-intent content."""

    def test_identify_inlines_image(self, prompts: PromptBuilder, fake_codec: MagicMock) -> None:
        request = prompts.identify(IMAGE)

        fake_codec.encode_for_transport.assert_called_once_with(IMAGE)
        assert request.intent == AnalysisIntent.IDENTIFY
        parts = request.to_request_body()["contents"][0]["parts"]
        assert parts[1] == {"inline_data": {"mime_type": "image/jpeg", "data": "aW1hZ2U="}}

    def test_name_prompt_lists_sources(self, prompts: PromptBuilder) -> None:
        request = prompts.nutrition_from_name("Chole Bhature", "1 plate")

        assert not request.has_image
        assert len(request.to_request_body()["contents"][0]["parts"]) == 1
        for source in AUTHORITATIVE_SOURCES:
            assert source in request.prompt

    def test_user_strings_are_json_escaped(self, prompts: PromptBuilder) -> None:
        name = 'Mom\'s "special" dal\nwith ghee'
        request = prompts.nutrition_from_name(name, "1 bowl")

        assert json.dumps(name) in request.prompt
        assert 'with ghee"' in request.prompt
        assert '"special" dal\nwith' not in request.prompt

    def test_description_prompt_embeds_text(self, prompts: PromptBuilder) -> None:
        request = prompts.nutrition_from_description("idli sambar")

        assert request.intent == AnalysisIntent.NUTRITION_FROM_DESCRIPTION
        assert '"idli sambar"' in request.prompt

    def test_portions_prompt_lists_exact_portions(self, prompts: PromptBuilder) -> None:
        items = [FoodItem(name="Rice", quantity="100g"), FoodItem(name="Dal", quantity="150g")]

        request = prompts.nutrition_from_portions(items)

        assert "100g Rice, 150g Dal" in request.prompt
        assert not request.has_image
        assert "supplementary" not in request.prompt

    def test_portions_image_is_supplementary(self, prompts: PromptBuilder) -> None:
        items = [FoodItem(name="Rice", quantity="100g")]

        request = prompts.nutrition_from_portions(items, image=IMAGE)

        assert request.has_image
        assert "supplementary context only" in request.prompt

    def test_improve_carries_prior_result(
        self, prompts: PromptBuilder, sample_result: AnalysisResult
    ) -> None:
        request = prompts.improve(IMAGE, sample_result)

        assert request.intent == AnalysisIntent.IMPROVE
        assert request.has_image
        assert "Dal Chawal" in request.prompt
        assert "480 kcal" in request.prompt
        assert "VERIFY and REFINE" in request.prompt


class TestAnalysisRequest:
    def test_blank_prompt_rejected(self) -> None:
        with pytest.raises(ValueError):
            AnalysisRequest(intent=AnalysisIntent.IDENTIFY, prompt="")
