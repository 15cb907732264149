"""Adaptive leveling engine behaviour."""

import random

import pytest

from level_lens.core import InvalidSessionError, QuestionNotFoundError
from level_lens.models.cefr import CEFRLevel, QuestionCategory
from level_lens.services.leveling import LevelingTestEngine

from conftest import build_small_bank


@pytest.fixture
def engine(small_bank):
    return LevelingTestEngine(small_bank)


def answer_next(engine, session_id, correct, time_spent_ms=1000):
    """Answer the next question; every question in the small bank has answer 0."""
    question = engine.get_next_question(session_id)
    outcome = engine.submit_answer(
        session_id,
        question_id=question.id,
        selected_answer=0 if correct else 1,
        time_spent_ms=time_spent_ms,
    )
    return question, outcome


class TestSessionLifecycle:

    def test_start_session(self, engine):
        session = engine.start_test_session()

        assert session.id.startswith("cefr-test-")
        assert session.initial_level == CEFRLevel.B1
        assert session.final_level == CEFRLevel.B1
        assert session.responses == []
        assert not session.completed
        assert engine.active_sessions == 1

    def test_first_question_is_at_initial_level(self, engine):
        session = engine.start_test_session()
        assert engine.get_next_question(session.id).level == CEFRLevel.B1

    def test_session_ids_are_unique(self, engine):
        ids = {engine.start_test_session().id for _ in range(20)}
        assert len(ids) == 20

    def test_unknown_session(self, engine):
        with pytest.raises(InvalidSessionError):
            engine.get_next_question("cefr-test-missing")
        with pytest.raises(InvalidSessionError):
            engine.submit_answer("cefr-test-missing", "b1-q-0", 0, 100)
        with pytest.raises(InvalidSessionError):
            engine.finalize_test("cefr-test-missing")

    def test_unknown_question(self, engine):
        session = engine.start_test_session()
        with pytest.raises(QuestionNotFoundError):
            engine.submit_answer(session.id, "b1-nope", 0, 100)
        assert engine.get_session(session.id).responses == []

    def test_completed_session_rejects_answers(self, engine):
        session = engine.start_test_session()
        for correct in (True, False, True):
            answer_next(engine, session.id, correct)

        assert engine.get_session(session.id).completed
        assert engine.get_next_question(session.id) is None
        with pytest.raises(InvalidSessionError):
            engine.submit_answer(session.id, "b1-q-0", 0, 100)

    def test_questions_do_not_repeat_within_session(self, engine):
        session = engine.start_test_session()
        asked = []
        outcome = None
        while outcome is None or not outcome.is_complete:
            question, outcome = answer_next(engine, session.id, correct=False)
            asked.append(question.id)
        assert len(asked) == len(set(asked))


class TestLevelChanges:

    def test_first_correct_answer_moves_up(self, engine):
        session = engine.start_test_session()
        _, outcome = answer_next(engine, session.id, correct=True)

        assert outcome.is_correct
        assert outcome.level_changed
        assert outcome.session.final_level == CEFRLevel.B2

    def test_first_incorrect_answer_keeps_level(self, engine):
        session = engine.start_test_session()
        _, outcome = answer_next(engine, session.id, correct=False)

        assert not outcome.is_correct
        assert not outcome.level_changed
        assert outcome.session.final_level == CEFRLevel.B1

    def test_two_correct_answers_never_lower_the_next_question(self, engine):
        session = engine.start_test_session()
        answer_next(engine, session.id, correct=True)
        _, outcome = answer_next(engine, session.id, correct=True)

        assert not outcome.is_complete
        assert engine.get_next_question(session.id).level.rank >= CEFRLevel.B1.rank

    def test_moving_down_needs_three_consistent_misses(self, engine):
        session = engine.start_test_session()
        answer_next(engine, session.id, correct=False)
        _, second = answer_next(engine, session.id, correct=False)
        assert second.session.final_level == CEFRLevel.B1

        _, third = answer_next(engine, session.id, correct=False)
        assert third.session.final_level == CEFRLevel.A2
        assert third.level_changed

    def test_outcome_session_is_not_changed_by_later_answers(self, engine):
        session = engine.start_test_session()
        _, first = answer_next(engine, session.id, correct=False)
        answer_next(engine, session.id, correct=False)
        answer_next(engine, session.id, correct=False)

        assert len(first.session.responses) == 1
        assert first.session.final_level == CEFRLevel.B1
        assert len(engine.get_session(session.id).responses) == 3

    def test_correct_answer_below_level_does_not_move_up(self, small_bank):
        engine = LevelingTestEngine(small_bank, initial_level=CEFRLevel.B2)
        session = engine.start_test_session()
        outcome = engine.submit_answer(session.id, "a2-q-0", 0, 500)

        assert outcome.is_correct
        assert outcome.session.final_level == CEFRLevel.B2

    @pytest.mark.parametrize("seed", range(10))
    def test_level_moves_at_most_one_step(self, engine, seed):
        rng = random.Random(seed)
        session = engine.start_test_session()
        outcome = None
        while outcome is None or not outcome.is_complete:
            _, outcome = answer_next(engine, session.id, correct=rng.random() < 0.5)

        for response in outcome.session.responses:
            assert abs(response.new_level.rank - response.previous_level.rank) <= 1
        assert len(outcome.session.responses) <= 6

    def test_level_stays_within_scale(self, small_bank):
        top = LevelingTestEngine(small_bank, initial_level=CEFRLevel.C1, max_questions=10)
        session = top.start_test_session()
        for _ in range(3):
            _, outcome = answer_next(top, session.id, correct=True)
        assert outcome.session.final_level == CEFRLevel.C1

        bottom = LevelingTestEngine(small_bank, initial_level=CEFRLevel.A1, max_questions=10)
        session = bottom.start_test_session()
        for _ in range(3):
            _, outcome = answer_next(bottom, session.id, correct=False)
        assert outcome.session.final_level == CEFRLevel.A1


class TestTermination:

    def test_completes_when_level_stabilizes(self, engine):
        session = engine.start_test_session()
        outcomes = [answer_next(engine, session.id, correct)[1] for correct in (True, False, True)]

        assert [o.is_complete for o in outcomes] == [False, False, True]
        assert [r.new_level for r in outcomes[-1].session.responses] == [CEFRLevel.B2] * 3

    def test_completes_at_max_questions(self, engine):
        session = engine.start_test_session()
        outcomes = [answer_next(engine, session.id, correct=False)[1] for _ in range(6)]

        assert [o.is_complete for o in outcomes] == [False] * 5 + [True]
        assert outcomes[-1].session.final_level == CEFRLevel.A1

    def test_max_questions_is_configurable(self, small_bank):
        engine = LevelingTestEngine(small_bank, max_questions=2)
        session = engine.start_test_session()
        answer_next(engine, session.id, correct=True)
        _, outcome = answer_next(engine, session.id, correct=False)
        assert outcome.is_complete

    def test_all_correct_reaches_top_level(self, engine):
        session = engine.start_test_session()
        outcome = None
        while outcome is None or not outcome.is_complete:
            _, outcome = answer_next(engine, session.id, correct=True)

        result = engine.finalize_test(session.id)
        assert result.level == CEFRLevel.C1
        assert result.total_questions == 5
        assert result.level_progression == [
            CEFRLevel.B1, CEFRLevel.B2, CEFRLevel.B2, CEFRLevel.C1, CEFRLevel.C1, CEFRLevel.C1
        ]
        assert result.confidence == pytest.approx(0.94)


class TestFinalize:

    def test_result_summarizes_responses(self, engine):
        session = engine.start_test_session()
        times = [1000, 2000, 3000]
        for correct, time_spent in zip((True, False, True), times):
            answer_next(engine, session.id, correct, time_spent_ms=time_spent)

        result = engine.finalize_test(session.id)

        assert result.session_id == session.id
        assert result.level == CEFRLevel.B2
        assert result.total_questions == 3
        assert result.correct_answers == 2
        assert result.average_time_per_question_ms == pytest.approx(2000)
        assert set(result.category_scores) == set(QuestionCategory)
        assert all(0.0 <= score <= 1.0 for score in result.category_scores.values())
        assert 0.3 <= result.confidence <= 1.0

    def test_finalize_removes_session(self, engine):
        session = engine.start_test_session()
        answer_next(engine, session.id, correct=True)
        engine.finalize_test(session.id)

        assert engine.active_sessions == 0
        with pytest.raises(InvalidSessionError):
            engine.get_next_question(session.id)

    def test_finalize_without_answers(self, engine):
        session = engine.start_test_session()
        result = engine.finalize_test(session.id)

        assert result.total_questions == 0
        assert result.average_time_per_question_ms == 0
        assert result.level == CEFRLevel.B1
        assert result.confidence == pytest.approx(0.3)
        assert result.level_progression == [CEFRLevel.B1]

    def test_category_scores_follow_the_questions_asked(self):
        bank = build_small_bank(per_level=3)
        engine = LevelingTestEngine(bank, max_questions=10)
        session = engine.start_test_session()
        # b1-q-0 is vocabulary, b1-q-1 grammar, b1-q-2 reading
        engine.submit_answer(session.id, "b1-q-0", 0, 100)
        engine.submit_answer(session.id, "b1-q-1", 1, 100)

        result = engine.finalize_test(session.id)

        assert result.category_scores[QuestionCategory.VOCABULARY] == 1.0
        assert result.category_scores[QuestionCategory.GRAMMAR] == 0.0
        assert result.category_scores[QuestionCategory.READING] == 0.0

    @pytest.mark.parametrize("seed", range(5))
    def test_confidence_within_bounds(self, engine, seed):
        rng = random.Random(seed)
        session = engine.start_test_session()
        for _ in range(rng.randint(0, 4)):
            _, outcome = answer_next(engine, session.id, correct=rng.random() < 0.5)
            if outcome.is_complete:
                break
        result = engine.finalize_test(session.id)
        assert 0.3 <= result.confidence <= 1.0


@pytest.mark.parametrize(
    "level, steps, expected",
    [
        (CEFRLevel.B1, 1, CEFRLevel.B2),
        (CEFRLevel.B1, -2, CEFRLevel.A1),
        (CEFRLevel.A1, -1, CEFRLevel.A1),
        (CEFRLevel.C1, 1, CEFRLevel.C1),
    ],
)
def test_level_shift_is_clamped_to_scale(level, steps, expected):
    assert level.shift(steps) == expected
