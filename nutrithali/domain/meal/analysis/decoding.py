"""
Tolerant decoding of model replies.

Turns the sanitized JSON object into an AnalysisResult. The model is
loose with field names for food items, so aliases are resolved here
explicitly instead of through fallback chains of try/except.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Union

import pydantic
import structlog

from nutrithali.domain.meal.analysis.models import (
    DEFAULT_QUANTITY,
    AnalysisResult,
    FoodItem,
    ModelTier,
)
from nutrithali.domain.meal.analysis.sanitizer import ResponseSanitizer
from nutrithali.domain.shared.errors import (
    MissingFieldError,
    UnparseableResponseError,
)

logger = structlog.get_logger(__name__)

NAME_KEYS = ("name", "item")
QUANTITY_KEYS = ("quantity", "amount")

REQUIRED_KEYS = (
    "estimatedPortionSize",
    "dishName",
    "calories",
    "macros",
    "verdictEmoji",
    "briefExplanation",
    "diabeticFriendliness",
    "diabeticAdvice",
    "portionSizeSuggestion",
)


def _first_present(data: Mapping[str, Any], keys: tuple[str, ...]) -> Optional[Any]:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def decode_food_item(raw: Any) -> FoodItem:
    """
    Decode one food item.

    Accepts a bare string (the name) or an object with "name"/"item"
    for the name and "quantity"/"amount" for the quantity.

    Args:
        raw: Decoded JSON value

    Returns:
        FoodItem

    Raises:
        MissingFieldError: If no name-bearing key is present
        UnparseableResponseError: If the value is neither string nor object

    Example:
        >>> decode_food_item("Dal").quantity
        'Standard serving'
        >>> decode_food_item({"item": "Rice", "amount": "200g"}).describe()
        '200g Rice'
    """
    if isinstance(raw, str):
        return FoodItem(name=raw, quantity=DEFAULT_QUANTITY)

    if not isinstance(raw, Mapping):
        raise UnparseableResponseError(
            f"Food item must be a string or object, got {type(raw).__name__}",
            raw=repr(raw),
        )

    name = _first_present(raw, NAME_KEYS)
    if name is None:
        raise MissingFieldError("name", raw=repr(raw))

    quantity = _first_present(raw, QUANTITY_KEYS)
    return FoodItem(
        name=str(name),
        quantity=str(quantity) if quantity is not None else DEFAULT_QUANTITY,
    )


def decode_food_items(raw: Any) -> Optional[List[FoodItem]]:
    """Decode the optional foodItems array (null stays None)."""
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise UnparseableResponseError(
            f"foodItems must be an array, got {type(raw).__name__}", raw=repr(raw)
        )
    return [decode_food_item(item) for item in raw]


def decode_analysis_result(
    data: Dict[str, Any],
    used_model: ModelTier,
    raw: Optional[str] = None,
    cleaned: Optional[str] = None,
) -> AnalysisResult:
    """
    Decode a sanitized JSON object into an AnalysisResult.

    Args:
        data: JSON object from the sanitizer
        used_model: Tier that produced the reply
        raw: Original reply text, kept on errors for diagnostics
        cleaned: Sanitized JSON text, kept on errors for diagnostics

    Returns:
        AnalysisResult tagged with used_model

    Raises:
        MissingFieldError: If a required key or food item name is missing
        UnparseableResponseError: If values have the wrong type or range
    """
    for key in REQUIRED_KEYS:
        if key not in data or data[key] is None:
            logger.warning("Model reply missing field", field=key, raw=raw)
            raise MissingFieldError(key, raw=raw)

    try:
        food_items = decode_food_items(data.get("foodItems"))
    except MissingFieldError as e:
        raise MissingFieldError(f"foodItems.{e.field}", raw=raw) from e

    payload = {key: data[key] for key in REQUIRED_KEYS}
    payload["foodItems"] = food_items
    payload["usedModel"] = used_model

    try:
        return AnalysisResult.model_validate(payload)
    except pydantic.ValidationError as e:
        logger.warning(
            "Model reply does not match result shape",
            errors=e.errors(include_url=False),
            raw=raw,
        )
        raise UnparseableResponseError(
            f"Reply does not match result shape: {e.error_count()} error(s)",
            raw=raw or repr(data),
            cleaned=cleaned,
        ) from e


def parse_analysis_reply(
    reply: Union[str, bytes, bytearray], used_model: ModelTier
) -> AnalysisResult:
    """
    Sanitize and decode a raw model reply in one step.

    Raises:
        UnparseableResponseError: If no JSON object matches the result shape
        MissingFieldError: If a required field is missing
    """
    text = ResponseSanitizer.to_text(reply)
    cleaned, data = ResponseSanitizer.parse(text)
    return decode_analysis_result(data, used_model=used_model, raw=text, cleaned=cleaned)
