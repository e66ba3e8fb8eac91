"""Gemini adapter."""
