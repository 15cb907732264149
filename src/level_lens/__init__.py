"""LevelLens: CEFR leveling tests and level-aware text adaptation."""

__version__ = "0.1.0"
