"""CEFR level and question category enums."""

from enum import Enum
from typing import List


class CEFRLevel(str, Enum):
    """Supported proficiency levels, lowest first."""
    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"

    @classmethod
    def ordered(cls) -> List["CEFRLevel"]:
        return list(cls)

    @property
    def rank(self) -> int:
        """Zero-based position on the scale (A1 = 0)."""
        return CEFRLevel.ordered().index(self)

    def shift(self, steps: int) -> "CEFRLevel":
        """Move ``steps`` levels up (or down, if negative), clamped to A1..C1."""
        levels = CEFRLevel.ordered()
        index = min(max(self.rank + steps, 0), len(levels) - 1)
        return levels[index]


class QuestionCategory(str, Enum):
    """Skill area a leveling question tests."""
    VOCABULARY = "vocabulary"
    GRAMMAR = "grammar"
    READING = "reading"


LEVEL_DESCRIPTIONS = {
    CEFRLevel.A1: "very simple words, short sentences, present tense",
    CEFRLevel.A2: "basic vocabulary, simple grammar, common topics",
    CEFRLevel.B1: "everyday vocabulary, clear structure, past/future tenses",
    CEFRLevel.B2: "abstract concepts, complex sentences, varied vocabulary",
    CEFRLevel.C1: "sophisticated language, nuanced meaning, idioms",
}
