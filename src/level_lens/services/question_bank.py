"""Static leveled question repository for the placement test."""

import json
import random
import re
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from ..core import get_logger, QuestionNotFoundError
from ..models.cefr import CEFRLevel, QuestionCategory
from ..models.leveling import TestQuestion

logger = get_logger(__name__)

# Question ids carry their level as a prefix, e.g. "b2-grammar-3"
_LEVEL_PREFIX = re.compile(r"^([a-c][12])-")


def level_from_question_id(question_id: str) -> Optional[CEFRLevel]:
    """Derive the level encoded in a question id, or None if it has no valid prefix."""
    match = _LEVEL_PREFIX.match(question_id)
    if not match:
        return None
    try:
        return CEFRLevel(match.group(1).upper())
    except ValueError:
        return None


class QuestionBank:
    """Read-only lookup of leveling questions by level, category and id."""

    def __init__(
        self,
        questions: Iterable[TestQuestion],
        rng: Optional[random.Random] = None,
    ):
        """
        Build the bank and check its integrity.

        Lookups by id go through the level prefix of the id, so every id
        must carry the prefix of its own level and be unique.

        Raises:
            ValueError: If an id is duplicated or its prefix disagrees with its level
        """
        self._rng = rng or random.Random()
        self._by_level: Dict[CEFRLevel, List[TestQuestion]] = {level: [] for level in CEFRLevel}
        seen = set()

        for question in questions:
            if question.id in seen:
                raise ValueError(f"Duplicate question id: {question.id}")
            prefix_level = level_from_question_id(question.id)
            if prefix_level != question.level:
                raise ValueError(
                    f"Question id {question.id!r} does not match its level {question.level.value}"
                )
            seen.add(question.id)
            self._by_level[question.level].append(question)

        logger.info(
            "Question bank loaded",
            total_questions=len(seen),
            per_level={level.value: len(items) for level, items in self._by_level.items()},
        )

    @classmethod
    def from_json(
        cls,
        path: Optional[Union[str, Path]] = None,
        rng: Optional[random.Random] = None,
    ) -> "QuestionBank":
        """Load questions from a JSON file (defaults to the bundled bank)."""
        if path is None:
            raw = resources.files("level_lens").joinpath("data/questions.json").read_text(encoding="utf-8")
        else:
            raw = Path(path).read_text(encoding="utf-8")
        records = json.loads(raw)
        return cls((TestQuestion.model_validate(record) for record in records), rng=rng)

    def __len__(self) -> int:
        return sum(len(items) for items in self._by_level.values())

    def get_questions_by_level(self, level: CEFRLevel) -> List[TestQuestion]:
        return list(self._by_level.get(level, []))

    def get_questions_by_category(
        self, level: CEFRLevel, category: QuestionCategory
    ) -> List[TestQuestion]:
        return [q for q in self._by_level.get(level, []) if q.category == category]

    def get_random_question(
        self,
        level: CEFRLevel,
        exclude: Iterable[str] = (),
    ) -> Optional[TestQuestion]:
        """
        Pick a random question at ``level``.

        Questions whose ids are in ``exclude`` are skipped while any others
        remain; once the level is exhausted any question may repeat.
        """
        questions = self._by_level.get(level, [])
        if not questions:
            return None

        excluded = set(exclude)
        fresh = [q for q in questions if q.id not in excluded]
        return self._rng.choice(fresh or questions)

    def find_question(self, question_id: str) -> Optional[TestQuestion]:
        level = level_from_question_id(question_id)
        if level is None:
            return None
        return next((q for q in self._by_level[level] if q.id == question_id), None)

    def get_question(self, question_id: str) -> TestQuestion:
        """
        Look up a question by id.

        Raises:
            QuestionNotFoundError: If the id is not in the bank
        """
        question = self.find_question(question_id)
        if question is None:
            raise QuestionNotFoundError(
                f"Question {question_id} not found", question_id=question_id
            )
        return question

    @staticmethod
    def available_levels() -> List[CEFRLevel]:
        return CEFRLevel.ordered()

    @staticmethod
    def is_supported_level(level: str) -> bool:
        return level in {item.value for item in CEFRLevel}


@lru_cache()
def get_question_bank() -> QuestionBank:
    """Get the bundled question bank."""
    return QuestionBank.from_json()
