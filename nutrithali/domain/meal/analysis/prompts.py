"""
Gemini prompts for food analysis.

IMPORTANT: Every prompt spells out the exact JSON shape of the reply.
The reply is decoded by decoding.decode_analysis_result, so the keys
here and the keys there must stay in sync.
"""

from __future__ import annotations

import json
from typing import List, Optional

from nutrithali.domain.meal.analysis.models import (
    AnalysisResult,
    FoodItem,
    describe_portions,
)
from nutrithali.domain.meal.analysis.ports import IImageCodec
from nutrithali.domain.meal.analysis.requests import (
    AnalysisIntent,
    AnalysisRequest,
    InlineImage,
)


# ═══════════════════════════════════════════════════════════
# SHARED INSTRUCTIONS
# ═══════════════════════════════════════════════════════════

HIDDEN_CALORIES_RULE = (
    "Account for hidden calories from cooking fats and additions "
    "(oil, ghee, butter, cream, sugar) typical for this preparation."
)

AUTHORITATIVE_SOURCES = [
    "USDA FoodData Central (fdc.nal.usda.gov)",
    "Healthline (healthline.com)",
    "Mayo Clinic (mayoclinic.org)",
    "WebMD (webmd.com)",
    "American Diabetes Association (diabetes.org)",
    "CDC (cdc.gov)",
    "MyFoodData (myfooddata.com)",
]

VERDICT_CHOICES = '"✅" or "⚠️"'
FRIENDLINESS_CHOICES = '"High", "Moderate", or "Low"'


def _q(value: str) -> str:
    """Quote a value for embedding in the JSON template."""
    return json.dumps(value, ensure_ascii=False)


def _result_shape(
    portion: str,
    dish: str,
    explanation: str,
    advice: str,
    suggestion: str,
    food_items: str,
    verdict: str = VERDICT_CHOICES,
    friendliness: str = FRIENDLINESS_CHOICES,
) -> str:
    return (
        "{\n"
        f'  "estimatedPortionSize": {portion},\n'
        f'  "dishName": {dish},\n'
        '  "calories": 0,\n'
        '  "macros": { "protein": 0, "carbs": 0, "fats": 0 },\n'
        f'  "verdictEmoji": {verdict},\n'
        f'  "briefExplanation": {explanation},\n'
        f'  "diabeticFriendliness": {friendliness},\n'
        f'  "diabeticAdvice": {advice},\n'
        f'  "portionSizeSuggestion": {suggestion},\n'
        f'  "foodItems": {food_items}\n'
        "}"
    )


ITEM_LIST_EXAMPLE = '[\n    { "name": "Item name", "quantity": "amount" }\n  ]'


def _items_json(items: List[FoodItem]) -> str:
    rows = [
        f'{{ "name": {_q(item.name)}, "quantity": {_q(item.quantity)} }}' for item in items
    ]
    return "[\n    " + ",\n    ".join(rows) + "\n  ]"


# ═══════════════════════════════════════════════════════════
# PROMPT TEXT BUILDERS
# ═══════════════════════════════════════════════════════════


def build_identify_prompt() -> str:
    """Identification pre-pass: dish name and portion only."""
    shape = _result_shape(
        portion='"Estimated portion (e.g., 250g, 1.5 cups)"',
        dish='"Name of the dish"',
        verdict='"✅"',
        explanation='"Initial identification."',
        friendliness='"Moderate"',
        advice='"Pending analysis..."',
        suggestion='"Pending analysis..."',
        food_items=ITEM_LIST_EXAMPLE,
    )
    return (
        "Analyse this food image to identify the dish and estimate the portion size.\n"
        "List each visible component with its estimated quantity. "
        "Note visible oil, ghee or butter as separate components.\n"
        f"{HIDDEN_CALORIES_RULE}\n\n"
        f"Return JSON in this exact format:\n{shape}"
    )


def build_nutrition_from_name_prompt(name: str, quantity: str) -> str:
    """Full analysis of a named dish at a given quantity."""
    sources = "\n".join(f"- {source}" for source in AUTHORITATIVE_SOURCES)
    shape = _result_shape(
        portion=_q(quantity),
        dish=_q(name),
        explanation='"Health verdict."',
        advice='"Specific advice based on respected sources."',
        suggestion='"Recommended portion size."',
        food_items="[]",
    )
    return (
        "Compute detailed nutritional information for:\n"
        f"Dish: {_q(name)}\n"
        f"Quantity: {_q(quantity)}\n\n"
        "Retrieve and verify accurate data from well-respected and credible sources "
        "such as:\n"
        f"{sources}\n\n"
        "1. Calculate precise CALORIES and MACROS (Protein, Carbs, Fats) for this "
        f"specific quantity. {HIDDEN_CALORIES_RULE}\n"
        "2. Provide DIABETES CARE information (Glycemic Index, Glycemic Load, and "
        "specific advice) based on the sources listed above.\n\n"
        f"Return JSON in this exact format:\n{shape}"
    )


def build_nutrition_from_description_prompt(description: str) -> str:
    """Portion estimate plus full analysis from free text."""
    shape = _result_shape(
        portion='"Estimated portion from description"',
        dish='"Name of dish/meal"',
        explanation='"One sentence explaining the verdict."',
        advice='"Specific advice for diabetics"',
        suggestion='"Recommended portion size for health"',
        food_items=ITEM_LIST_EXAMPLE,
    )
    return (
        f"Based on this food description: {_q(description)}\n\n"
        "Provide detailed nutritional analysis:\n\n"
        "1. PORTION ESTIMATION: Estimate the portion size based on the description "
        '(e.g., "250g", "1.5 cups", "2 medium rotis + 150g dal + 200g rice")\n\n'
        "2. NUTRITIONAL ANALYSIS: Calculate for the described portion:\n"
        "- Total calories\n"
        "- Macronutrients (protein, carbs, fats in grams)\n"
        f"- {HIDDEN_CALORIES_RULE}\n\n"
        "3. HEALTH ASSESSMENT: Provide overall health verdict and diabetic assessment "
        "(Type 2) considering Glycemic Index and carb load.\n\n"
        f"Return JSON in this exact format:\n{shape}"
    )


def build_nutrition_from_portions_prompt(items: List[FoodItem], has_image: bool) -> str:
    """Full analysis for an explicit, already-decided portion list."""
    portions = describe_portions(items)
    shape = _result_shape(
        portion=_q(portions),
        dish='"Name of the meal/combination"',
        explanation='"One sentence health assessment"',
        advice='"Specific advice for diabetic patients"',
        suggestion='"Recommended portion adjustment if needed"',
        food_items=_items_json(items),
    )
    image_note = (
        "The attached image is supplementary context only. Do NOT change the "
        "portions listed above based on it.\n\n"
        if has_image
        else ""
    )
    return (
        "Calculate nutritional information for this meal with these SPECIFIC portions:\n"
        f"{portions}\n\n"
        f"{image_note}"
        "Provide detailed nutritional analysis:\n"
        f"1. Total calories for these EXACT portions. {HIDDEN_CALORIES_RULE}\n"
        "2. Macronutrients (protein, carbs, fats in grams) for these EXACT portions\n"
        "3. Overall health verdict based on nutritional balance\n"
        "4. Diabetic assessment considering total carb load and glycemic index\n\n"
        f"Return JSON in this exact format:\n{shape}"
    )


def build_improve_prompt(prior: AnalysisResult) -> str:
    """Verification and refinement of a fast-model result."""
    shape = _result_shape(
        portion='"Precise portion estimate"',
        dish='"Refined dish name"',
        explanation='"Enhanced explanation"',
        advice='"Detailed diabetic advice with specific recommendations"',
        suggestion='"Recommended portion for diabetic patients"',
        food_items='[\n    { "name": "Item name", "quantity": "precise amount" }\n  ]',
    )
    macros = prior.macros
    return (
        "CONTEXT: A previous analysis using a faster model provided this assessment:\n"
        f"- Dish Name: {prior.dish_name}\n"
        f"- Estimated Portion: {prior.estimated_portion_size}\n"
        f"- Calories: {int(prior.calories)} kcal\n"
        f"- Protein: {int(macros.protein)}g, Carbs: {int(macros.carbs)}g, "
        f"Fats: {int(macros.fats)}g\n"
        f"- Diabetic Friendliness: {prior.diabetic_friendliness}\n\n"
        "YOUR TASK: VERIFY and REFINE this assessment using the image provided. "
        "This is not a fresh analysis: keep what is correct and fix what is not.\n\n"
        "1. VERIFY the previous assessment - correct any obvious errors in dish "
        "identification or portion estimation\n"
        "2. Provide MORE PRECISE portion estimation (use exact measurements like grams "
        "or specific units)\n"
        "3. Calculate MORE ACCURATE nutritional values (account for cooking methods). "
        f"{HIDDEN_CALORIES_RULE}\n"
        "4. Give ENHANCED diabetic guidance (consider glycemic load, insulin response, "
        "and meal timing recommendations)\n\n"
        f"Return JSON in this exact format:\n{shape}"
    )


# ═══════════════════════════════════════════════════════════
# REQUEST BUILDER
# ═══════════════════════════════════════════════════════════


class PromptBuilder:
    """
    Builds analysis requests for every intent.

    Pure construction: the only collaborator is the image codec used
    to inline images as base64 JPEG.

    Example:
        >>> builder = PromptBuilder(image_codec=PillowImageCodec())
        >>> request = builder.nutrition_from_name("Dal Tadka", "200g")
        >>> assert request.intent == AnalysisIntent.NUTRITION_FROM_NAME
        >>> assert not request.has_image
    """

    def __init__(self, image_codec: IImageCodec):
        self.image_codec = image_codec

    def _inline(self, image: bytes) -> InlineImage:
        return InlineImage(data=self.image_codec.encode_for_transport(image))

    def identify(self, image: bytes) -> AnalysisRequest:
        return AnalysisRequest(
            intent=AnalysisIntent.IDENTIFY,
            prompt=build_identify_prompt(),
            image=self._inline(image),
        )

    def nutrition_from_name(self, name: str, quantity: str) -> AnalysisRequest:
        return AnalysisRequest(
            intent=AnalysisIntent.NUTRITION_FROM_NAME,
            prompt=build_nutrition_from_name_prompt(name, quantity),
        )

    def nutrition_from_description(self, description: str) -> AnalysisRequest:
        return AnalysisRequest(
            intent=AnalysisIntent.NUTRITION_FROM_DESCRIPTION,
            prompt=build_nutrition_from_description_prompt(description),
        )

    def nutrition_from_portions(
        self, items: List[FoodItem], image: Optional[bytes] = None
    ) -> AnalysisRequest:
        return AnalysisRequest(
            intent=AnalysisIntent.NUTRITION_FROM_PORTIONS,
            prompt=build_nutrition_from_portions_prompt(items, has_image=image is not None),
            image=self._inline(image) if image is not None else None,
        )

    def improve(self, image: bytes, prior: AnalysisResult) -> AnalysisRequest:
        return AnalysisRequest(
            intent=AnalysisIntent.IMPROVE,
            prompt=build_improve_prompt(prior),
            image=self._inline(image),
        )
