"""
NutriThali meal analysis core.

Photo or text in, structured nutrition and diabetes-oriented guidance out,
driven by a two-tier Gemini model pipeline.

Structure:
- domain/: Analysis models, prompts, sanitizer, session states, ports
- infrastructure/: Gemini client, image codec, meal store, config, logging
- application/: Session orchestrator and history service
- scripts/: Command line entry points
- tests/: Test suite (unit)
"""

__version__ = "1.0.0"
