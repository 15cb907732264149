"""Adaptive CEFR leveling test engine."""

import secrets
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..core import get_logger, InvalidSessionError
from ..models.cefr import CEFRLevel, QuestionCategory
from ..models.leveling import (
    AnswerOutcome,
    TestQuestion,
    TestResponse,
    TestResult,
    TestSession,
)
from .question_bank import QuestionBank

logger = get_logger(__name__)

MIN_CONFIDENCE = 0.3
MAX_CONFIDENCE = 1.0


class LevelingTestEngine:
    """
    Estimates a learner's level from a short sequence of graded answers.

    Sessions move NotStarted -> InProgress -> Completed. The level only
    moves one step at a time and only once a run of answers agrees, so a
    single lucky or unlucky guess cannot swing the estimate.
    """

    def __init__(
        self,
        question_bank: QuestionBank,
        max_questions: int = 6,
        initial_level: CEFRLevel = CEFRLevel.B1,
        stabilization_window: int = 3,
    ):
        self.bank = question_bank
        self.max_questions = max_questions
        self.initial_level = CEFRLevel(initial_level)
        self.stabilization_window = stabilization_window
        self._sessions: Dict[str, TestSession] = {}

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    def start_test_session(self) -> TestSession:
        """Create a new in-progress session at the initial level."""
        session = TestSession(
            id=self._generate_session_id(),
            initial_level=self.initial_level,
            final_level=self.initial_level,
        )
        self._sessions[session.id] = session

        logger.info("Leveling test started", session_id=session.id, level=session.initial_level.value)
        return session

    def get_session(self, session_id: str) -> Optional[TestSession]:
        return self._sessions.get(session_id)

    def get_next_question(self, session_id: str) -> Optional[TestQuestion]:
        """
        Choose the next question for a session.

        Returns None once the session is completed.

        Raises:
            InvalidSessionError: If the session does not exist
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise InvalidSessionError(f"Session {session_id} not found", session_id=session_id)
        if session.completed:
            return None

        level = self._next_test_level(session)
        question = self.bank.get_random_question(level, exclude=session.asked_question_ids)

        if question is None:
            logger.error("No questions available for level", session_id=session_id, level=level.value)
            return None

        logger.debug(
            "Next question selected",
            session_id=session_id,
            level=level.value,
            question_id=question.id,
        )
        return question

    def submit_answer(
        self,
        session_id: str,
        question_id: str,
        selected_answer: int,
        time_spent_ms: int,
    ) -> AnswerOutcome:
        """
        Grade an answer, update the level estimate and decide termination.

        Raises:
            InvalidSessionError: If the session is unknown or already completed
            QuestionNotFoundError: If the question id is not in the bank
        """
        session = self._sessions.get(session_id)
        if session is None or session.completed:
            raise InvalidSessionError(
                f"Session {session_id} is invalid or already completed", session_id=session_id
            )

        question = self.bank.get_question(question_id)

        is_correct = selected_answer == question.correct_answer
        previous_level = session.final_level
        new_level = self.calculate_new_level(session, question, is_correct)

        session.responses.append(
            TestResponse(
                question_id=question_id,
                selected_answer=selected_answer,
                is_correct=is_correct,
                time_spent_ms=time_spent_ms,
                previous_level=previous_level,
                new_level=new_level,
            )
        )
        session.final_level = new_level

        is_complete = self.should_complete_test(session)
        if is_complete:
            self._complete(session)

        logger.info(
            "Answer submitted",
            session_id=session_id,
            question_id=question_id,
            is_correct=is_correct,
            previous_level=previous_level.value,
            new_level=new_level.value,
            is_complete=is_complete,
        )

        return AnswerOutcome(
            session=session.model_copy(deep=True),
            is_correct=is_correct,
            level_changed=previous_level != new_level,
            is_complete=is_complete,
        )

    def finalize_test(self, session_id: str) -> TestResult:
        """
        Produce the final result and drop the session from the live set.

        An unfinished session is completed as-is.

        Raises:
            InvalidSessionError: If the session does not exist
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise InvalidSessionError(f"Session {session_id} not found", session_id=session_id)

        if not session.completed:
            self._complete(session)

        result = self._build_result(session)
        del self._sessions[session_id]

        logger.info(
            "Leveling test finalized",
            session_id=session_id,
            level=result.level.value,
            confidence=round(result.confidence, 2),
            total_questions=result.total_questions,
        )
        return result

    def calculate_new_level(
        self,
        session: TestSession,
        question: TestQuestion,
        is_correct: bool,
    ) -> CEFRLevel:
        """
        Apply the consistency rule to a new answer.

        Moving up needs a correct answer at or above the current level with
        the two previous answers also correct; moving down needs an incorrect
        answer at or below the current level with the two previous answers
        also incorrect. The very first answer of a session may move the
        level up on its own.
        """
        current = session.final_level
        recent = session.responses[-2:]

        if is_correct:
            if question.level.rank >= current.rank:
                consistent = len(recent) >= 2 and all(r.is_correct for r in recent)
                if consistent or not session.responses:
                    return current.shift(1)
            return current

        if question.level.rank <= current.rank:
            consistent = len(recent) >= 2 and all(not r.is_correct for r in recent)
            if consistent:
                return current.shift(-1)
        return current

    def should_complete_test(self, session: TestSession) -> bool:
        if len(session.responses) >= self.max_questions:
            return True

        window = self.stabilization_window
        if len(session.responses) >= window:
            last_levels = {r.new_level for r in session.responses[-window:]}
            if len(last_levels) == 1:
                return True

        return False

    def calculate_confidence(self, session: TestSession) -> float:
        """
        Confidence = 0.7 x accuracy near the final level + 0.3 x level stability,
        clamped to [0.3, 1.0].
        """
        final_level = session.final_level
        at_final_level = [
            r for r in session.responses
            if r.new_level == final_level or r.previous_level == final_level
        ]
        consistency = 0.0
        if at_final_level:
            consistency = sum(1 for r in at_final_level if r.is_correct) / len(at_final_level)

        distinct_levels = {r.new_level for r in session.responses}
        stability = max(0.0, 1.0 - 0.2 * (len(distinct_levels) - 1)) if distinct_levels else 1.0

        confidence = consistency * 0.7 + stability * 0.3
        return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))

    def _next_test_level(self, session: TestSession) -> CEFRLevel:
        if not session.responses:
            return session.initial_level

        current = session.final_level
        recent = session.responses[-2:]
        if len(recent) < 2:
            return current

        if all(r.is_correct and r.previous_level.rank >= current.rank for r in recent):
            return current.shift(1)
        if all(not r.is_correct and r.previous_level.rank <= current.rank for r in recent):
            return current.shift(-1)
        return current

    def _complete(self, session: TestSession) -> None:
        session.completed = True
        session.end_time = datetime.now(timezone.utc)
        session.confidence = self.calculate_confidence(session)

    def _build_result(self, session: TestSession) -> TestResult:
        total = len(session.responses)
        correct = sum(1 for r in session.responses if r.is_correct)
        total_time = sum(r.time_spent_ms for r in session.responses)

        return TestResult(
            level=session.final_level,
            confidence=session.confidence,
            session_id=session.id,
            test_date=session.start_time,
            total_questions=total,
            correct_answers=correct,
            average_time_per_question_ms=total_time / total if total else 0.0,
            category_scores={
                category: self._category_score(session.responses, category)
                for category in QuestionCategory
            },
            level_progression=[session.initial_level] + [r.new_level for r in session.responses],
        )

    def _category_score(self, responses: List[TestResponse], category: QuestionCategory) -> float:
        matching = []
        for response in responses:
            question = self.bank.find_question(response.question_id)
            if question is not None and question.category == category:
                matching.append(response)

        if not matching:
            return 0.0
        return sum(1 for r in matching if r.is_correct) / len(matching)

    @staticmethod
    def _generate_session_id() -> str:
        return f"cefr-test-{int(time.time() * 1000)}-{secrets.token_hex(5)}"
