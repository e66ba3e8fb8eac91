#!/usr/bin/env python3
"""
Analyse a meal from the command line.

Usage:
    python -m nutrithali.scripts.analyse_meal thali.jpg
    python -m nutrithali.scripts.analyse_meal thali.jpg --improve --save Lunch
    python -m nutrithali.scripts.analyse_meal --describe "2 rotis and dal"

Environment Variables:
    GEMINI_API_KEY: Gemini API key (required)
    GEMINI_BASE_URL: API base URL (optional)
    GEMINI_FAST_MODEL / GEMINI_DETAILED_MODEL: Model ids (optional)
    GEMINI_TIMEOUT_SECONDS: Request timeout (optional, default 60)
    NUTRITHALI_LOG_LEVEL: Log level (optional, default INFO)
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import structlog

from nutrithali.application.meal.analysis_orchestrator import AnalysisOrchestrator
from nutrithali.domain.meal.analysis.models import AnalysisResult
from nutrithali.domain.meal.analysis.ports import IAnalysisClient
from nutrithali.domain.meal.analysis.prompts import PromptBuilder
from nutrithali.domain.meal.persistence.models import MealCategory
from nutrithali.domain.meal.session.states import (
    ErrorState,
    IdentifiedState,
    ResultState,
)
from nutrithali.domain.shared.errors import DomainError
from nutrithali.infrastructure.ai.gemini_client import GeminiClient
from nutrithali.infrastructure.config import load_environment
from nutrithali.infrastructure.credentials import EnvCredentialSource
from nutrithali.infrastructure.imaging.jpeg_codec import PillowImageCodec
from nutrithali.infrastructure.logging_config import configure_logging
from nutrithali.infrastructure.persistence.in_memory_meal_store import InMemoryMealStore

logger = structlog.get_logger(__name__)


def _category(value: str) -> MealCategory:
    for category in MealCategory:
        if category.value.lower() == value.strip().lower():
            return category
    names = ", ".join(c.value for c in MealCategory)
    raise argparse.ArgumentTypeError(f"invalid category {value!r} (choose from {names})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="analyse_meal",
        description="Identify a meal and estimate its nutrition with Gemini.",
    )
    parser.add_argument("image", nargs="?", type=Path, help="Meal photo (any Pillow format)")
    parser.add_argument("--describe", metavar="TEXT", help="Analyse a text description instead")
    parser.add_argument(
        "--improve",
        action="store_true",
        help="Refine the result once with the detailed model",
    )
    parser.add_argument(
        "--save",
        metavar="CATEGORY",
        type=_category,
        help="Save the result under Breakfast, Lunch, Dinner or Snacks",
    )
    parser.add_argument("--json-logs", action="store_true", help="Render logs as JSON")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.image is None and not args.describe:
        parser.error("an IMAGE or --describe TEXT is required")
    if args.image is not None and args.describe:
        parser.error("IMAGE and --describe are mutually exclusive")
    return args


def render_result(result: AnalysisResult) -> str:
    """Plain text report for a result."""
    macros = result.macros
    lines = [
        f"{result.verdict_emoji.value} {result.dish_name} ({result.used_model.display_name})",
        f"Portion:   {result.estimated_portion_size}",
        f"Calories:  {result.calories:.0f} kcal",
        f"Macros:    protein {macros.protein:.0f}g, carbs {macros.carbs:.0f}g, "
        f"fats {macros.fats:.0f}g",
        f"Verdict:   {result.verdict.value} - {result.brief_explanation}",
        f"Diabetic:  {result.friendliness_level.value} - {result.diabetic_advice}",
        f"Suggested: {result.portion_size_suggestion}",
    ]
    if result.food_items:
        lines.append("Items:")
        lines.extend(f"  - {item.describe()}" for item in result.food_items)
    return "\n".join(lines)


async def run(args: argparse.Namespace, client: IAnalysisClient) -> int:
    """Drive one session with the given client. Returns exit code."""
    logger.info("Analysing meal", source="description" if args.describe else "image")
    codec = PillowImageCodec()
    orchestrator = AnalysisOrchestrator(
        client=client,
        prompts=PromptBuilder(image_codec=codec),
        store=InMemoryMealStore(image_codec=codec),
    )

    try:
        if args.describe:
            state = await orchestrator.start_from_description(args.describe)
        else:
            state = await orchestrator.start_from_image(args.image.read_bytes())
            if isinstance(state, IdentifiedState):
                print(f"Identified: {state.result.dish_name} ({state.result.estimated_portion_size})")
                state = await orchestrator.confirm()

        if args.improve and isinstance(state, ResultState):
            state = await orchestrator.improve()
    except (DomainError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if isinstance(state, ErrorState):
        print(f"Error: {state.message}", file=sys.stderr)
        return 1
    if not isinstance(state, ResultState):
        print(f"Error: unexpected session state {state.label}", file=sys.stderr)
        return 1

    print(render_result(state.result))

    if args.save is not None:
        entry = await orchestrator.save(args.save)
        if entry is None:
            error = orchestrator.state
            message = error.message if isinstance(error, ErrorState) else "not saved"
            print(f"Error: {message}", file=sys.stderr)
            return 1
        print(f"Saved as {entry.category.value} ({entry.id})")

    return 0


async def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    load_environment()
    configure_logging(json_output=args.json_logs)

    async with GeminiClient(credentials=EnvCredentialSource()) as client:
        return await run(args, client)


def cli() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
