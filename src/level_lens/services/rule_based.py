"""Local generation provider that rewrites text with per-level rules."""

import re
from typing import Dict, List

from ..core import get_logger, GenerationFailedError
from ..models.cefr import CEFRLevel
from .prompts import extract_prompt_payload, truncate_summary
from .provider import GenerationProvider, GenerationSession, SessionConfig, SessionKind

logger = get_logger(__name__)

WORD_REPLACEMENTS: Dict[CEFRLevel, Dict[str, str]] = {
    CEFRLevel.A1: {
        "difficult": "hard",
        "enormous": "very big",
        "purchase": "buy",
        "automobile": "car",
        "residence": "home",
        "utilize": "use",
        "commence": "start",
        "terminate": "end",
        "magnificent": "great",
        "demonstrate": "show",
    },
    CEFRLevel.A2: {
        "enormous": "huge",
        "purchase": "buy",
        "automobile": "car",
        "residence": "house",
        "utilize": "use",
        "commence": "begin",
        "terminate": "finish",
        "demonstrate": "show",
        "approximately": "about",
        "investigate": "look into",
    },
    CEFRLevel.B1: {
        "enormous": "huge",
        "automobile": "vehicle",
        "residence": "house",
        "utilize": "use",
        "commence": "begin",
        "demonstrate": "show",
        "approximately": "about",
        "investigate": "examine",
        "substantial": "large",
        "comprehensive": "complete",
    },
    CEFRLevel.B2: {
        "utilize": "use",
        "commence": "begin",
        "demonstrate": "show",
        "investigate": "examine",
        "substantial": "significant",
        "comprehensive": "thorough",
        "elaborate": "detailed",
        "diminish": "reduce",
        "constitute": "make up",
        "accumulate": "collect",
    },
    CEFRLevel.C1: {
        "demonstrate": "show",
        "substantial": "significant",
        "elaborate": "detailed",
        "constitute": "form",
        "accumulate": "gather",
        "scrutinize": "examine closely",
        "contemplate": "consider",
        "perpetuate": "continue",
        "circumvent": "avoid",
        "corroborate": "confirm",
    },
}

# Words per sentence before a sentence is split
MAX_SENTENCE_LENGTH: Dict[CEFRLevel, int] = {
    CEFRLevel.A1: 10,
    CEFRLevel.A2: 15,
    CEFRLevel.B1: 20,
    CEFRLevel.B2: 25,
    CEFRLevel.C1: 30,
}

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def simplify_with_rules(text: str, level: CEFRLevel) -> str:
    """Replace hard words and split long sentences for ``level``."""
    simplified = text.strip()

    for complex_word, simple_word in WORD_REPLACEMENTS[level].items():
        simplified = re.sub(rf"\b{complex_word}\b", simple_word, simplified, flags=re.IGNORECASE)

    max_length = MAX_SENTENCE_LENGTH[level]
    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(simplified) if s.strip()]

    rewritten: List[str] = []
    for sentence in sentences:
        words = sentence.split()
        for start in range(0, len(words), max_length):
            rewritten.append(" ".join(words[start:start + max_length]))

    simplified = ". ".join(rewritten).strip()
    if simplified and not re.search(r"[.!?]$", simplified):
        simplified += "."
    return simplified


def _template_quiz(text: str, level: CEFRLevel) -> str:
    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(text) if s.strip()]
    first = truncate_summary(sentences[0] if sentences else text)
    count = len(sentences) or 1

    counts = sorted({count, count + 1, count + 2, max(count - 1, 0) if count > 1 else count + 3})
    answer_letter = "ABCD"[counts.index(count)]

    return "\n".join([
        "Question: Which sentence comes from the text?",
        f"A) {first}",
        "B) The text is about a trip to the moon.",
        "C) The text is a list of numbers.",
        "D) The text is a poem about the sea.",
        "Answer: A",
        "",
        f"Question: How many sentences does this {level.value} level text have?",
        *[f"{letter}) {value}" for letter, value in zip("ABCD", counts)],
        f"Answer: {answer_letter}",
    ])


class RuleBasedSession(GenerationSession):
    """Session that answers prompts built by ``prompts`` without a model."""

    async def generate(self, prompt: str) -> str:
        if self.destroyed:
            raise GenerationFailedError(
                f"Session {self.id} has been destroyed", provider="local", kind=self.kind.value
            )

        payload = extract_prompt_payload(prompt)
        if payload is None:
            raise GenerationFailedError(
                "Prompt does not carry a level and text payload", provider="local", kind=self.kind.value
            )
        level, text = payload

        if self.kind == SessionKind.SUMMARIZER:
            return truncate_summary(text.strip())
        if self.kind == SessionKind.WRITER:
            return _template_quiz(text, level)
        return simplify_with_rules(text, level)


class RuleBasedGenerationProvider(GenerationProvider):
    """Always-available provider used for local development and offline use."""

    name = "local"

    async def is_available(self) -> bool:
        return True

    async def create_session(self, config: SessionConfig) -> RuleBasedSession:
        session = RuleBasedSession(config)
        logger.debug("Local session created", session_id=session.id, kind=config.kind.value)
        return session
