"""Adaptive leveling test endpoints."""

from fastapi import APIRouter, Depends

from ..core import get_logger
from ..models.api import (
    AnswerRequest,
    AnswerResponse,
    NextQuestionResponse,
    StartTestResponse,
    TestResultResponse,
)
from ..services.container import AppContainer
from .dependencies import get_container

router = APIRouter(prefix="/leveling", tags=["Leveling"])
logger = get_logger(__name__)


@router.post("/start", response_model=StartTestResponse)
async def start_test(container: AppContainer = Depends(get_container)):
    """
    Start a leveling test.

    Returns:
        The new session and its first question
    """
    engine = container.leveling
    session = engine.start_test_session()
    question = engine.get_next_question(session.id)
    return StartTestResponse(session=session, question=question)


@router.post("/{session_id}/answer", response_model=AnswerResponse)
async def submit_answer(
    session_id: str,
    body: AnswerRequest,
    container: AppContainer = Depends(get_container),
):
    """
    Grade an answer and move the test forward.

    When the answer completes the test, the result is finalized and stored
    as the user's level; otherwise the next question is returned.
    """
    engine = container.leveling
    outcome = engine.submit_answer(
        session_id,
        question_id=body.question_id,
        selected_answer=body.selected_answer,
        time_spent_ms=body.time_spent_ms,
    )

    if outcome.is_complete:
        result = engine.finalize_test(session_id)
        await container.store.save_last_result(result)
        return AnswerResponse(
            session=outcome.session,
            is_correct=outcome.is_correct,
            level_changed=outcome.level_changed,
            is_complete=True,
            result=result,
        )

    return AnswerResponse(
        session=outcome.session,
        is_correct=outcome.is_correct,
        level_changed=outcome.level_changed,
        is_complete=False,
        next_question=engine.get_next_question(session_id),
    )


@router.get("/{session_id}/question", response_model=NextQuestionResponse)
async def get_next_question(
    session_id: str,
    container: AppContainer = Depends(get_container),
):
    """Next question for a live session."""
    question = container.leveling.get_next_question(session_id)
    return NextQuestionResponse(question=question)


@router.post("/{session_id}/finish", response_model=TestResultResponse)
async def finish_test(
    session_id: str,
    container: AppContainer = Depends(get_container),
):
    """
    End a test early with the answers given so far.

    The result is stored like a normally completed test.
    """
    result = container.leveling.finalize_test(session_id)
    await container.store.save_last_result(result)
    logger.info("Leveling test finished early", session_id=session_id, total_questions=result.total_questions)
    return TestResultResponse(result=result)


@router.get("/result", response_model=TestResultResponse)
async def get_last_result(container: AppContainer = Depends(get_container)):
    """Most recent stored test result, if any."""
    return TestResultResponse(result=await container.store.get_last_result())
