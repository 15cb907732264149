"""Prompt templates and parsing of generated quiz text."""

import re
from typing import List, Optional, Tuple

from ..models.cefr import CEFRLevel, LEVEL_DESCRIPTIONS
from ..models.generation import QuizQuestion

TEXT_OPEN = "<<<"
TEXT_CLOSE = ">>>"
MAX_QUIZ_QUESTIONS = 3

_PAYLOAD_PATTERN = re.compile(
    r"LEVEL:\s*(?P<level>A1|A2|B1|B2|C1)\s*\nTEXT:\s*\n"
    + re.escape(TEXT_OPEN) + r"\n(?P<text>.*)\n" + re.escape(TEXT_CLOSE),
    re.DOTALL,
)
_OPTION_PATTERN = re.compile(r"^\(?([A-Da-d])[\).:]\s*(.*)$")
_ANSWER_PATTERN = re.compile(r"answer:\s*\(?([A-D])", re.IGNORECASE)


def _payload(level: CEFRLevel, text: str) -> str:
    return f"LEVEL: {level.value}\nTEXT:\n{TEXT_OPEN}\n{text}\n{TEXT_CLOSE}"


def build_simplification_prompt(level: CEFRLevel, text: str) -> str:
    """Prompt asking for ``text`` rewritten at ``level``."""
    return "\n".join([
        f"Rewrite the following text for {level.value} level English learners.",
        f"Use {LEVEL_DESCRIPTIONS[level]}.",
        "- Keep the original meaning and key information intact",
        "- Break down complex sentences into simpler ones",
        "- Replace difficult words with simpler alternatives when possible",
        "Respond with the rewritten text only.",
        "",
        _payload(level, text),
    ])


def build_summary_prompt(level: CEFRLevel, text: str, max_sentences: int = 2) -> str:
    """Prompt asking for a short summary in language suited to ``level``."""
    return "\n".join([
        f"Summarize the following text in at most {max_sentences} sentences.",
        f"Use language suitable for {level.value} level learners.",
        "Respond with the summary only.",
        "",
        _payload(level, text),
    ])


def build_quiz_prompt(level: CEFRLevel, text: str) -> str:
    """Prompt asking for multiple choice comprehension questions."""
    return "\n".join([
        f"Generate 2-3 multiple choice questions about this {level.value} level text "
        "to test comprehension. Format each question with:",
        "Question: [question text]",
        "A) [option A]",
        "B) [option B]",
        "C) [option C]",
        "D) [option D]",
        "Answer: [A/B/C/D]",
        "",
        _payload(level, text),
    ])


def extract_prompt_payload(prompt: str) -> Optional[Tuple[CEFRLevel, str]]:
    """Recover the level and source text embedded in a prompt built here."""
    match = _PAYLOAD_PATTERN.search(prompt)
    if not match:
        return None
    return CEFRLevel(match.group("level")), match.group("text")


def parse_quiz_text(quiz_text: str, level: CEFRLevel) -> List[QuizQuestion]:
    """
    Parse ``Question:/A)/B)/C)/D)/Answer:`` blocks into quiz questions.

    Blocks without four options or an answer line are skipped; at most
    three questions are returned.
    """
    questions: List[QuizQuestion] = []
    blocks = re.split(r"(?im)^\s*(?:question(?:\s*\d+)?\s*:|\d+\.)", quiz_text)

    for block in blocks:
        lines = [line.strip() for line in block.strip().splitlines() if line.strip()]
        if len(lines) < 6:
            continue

        question_text = lines[0]
        options = []
        for line in lines[1:]:
            option = _OPTION_PATTERN.match(line)
            if option:
                options.append(option.group(2).strip())
        answer = next((_ANSWER_PATTERN.search(line) for line in lines if _ANSWER_PATTERN.search(line)), None)

        if not question_text or len(options) != 4 or answer is None:
            continue

        questions.append(
            QuizQuestion(
                id=f"q{len(questions) + 1}",
                question=question_text,
                options=options,
                correct_answer=ord(answer.group(1).upper()) - ord("A"),
                explanation=f"This tests understanding of {level.value} level content.",
            )
        )
        if len(questions) >= MAX_QUIZ_QUESTIONS:
            break

    return questions


def fallback_quiz(level: CEFRLevel) -> List[QuizQuestion]:
    """Single generic question used when generated output cannot be parsed."""
    return [
        QuizQuestion(
            id="q1",
            question=f"What is the main topic of this {level.value} level text?",
            options=["The text content", "Language learning", "Something else", "Not sure"],
            correct_answer=0,
            explanation="This question tests basic comprehension.",
        )
    ]


def truncate_summary(text: str, limit: int = 60) -> str:
    """Short summary by truncation: whole text if short, else a 57-char prefix plus '...'."""
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text
