"""LetterDash round generation and resilience engine."""

__version__ = "1.0.0"
