"""Food analysis domain: models, prompts, sanitizer and decoding."""
