"""Question bank loading and lookup."""

import json

import pytest

from level_lens.core import QuestionNotFoundError
from level_lens.models.cefr import CEFRLevel, QuestionCategory
from level_lens.services.question_bank import QuestionBank, level_from_question_id

from conftest import build_small_bank, make_question


@pytest.fixture(scope="module")
def bundled_bank():
    return QuestionBank.from_json()


class TestBundledBank:
    """The question file shipped with the package."""

    def test_every_level_has_questions(self, bundled_bank):
        for level in CEFRLevel:
            assert bundled_bank.get_questions_by_level(level), level

    def test_every_level_covers_every_category(self, bundled_bank):
        for level in CEFRLevel:
            for category in QuestionCategory:
                assert bundled_bank.get_questions_by_category(level, category), (level, category)

    def test_ids_carry_their_own_level(self, bundled_bank):
        for level in CEFRLevel:
            for question in bundled_bank.get_questions_by_level(level):
                assert level_from_question_id(question.id) == question.level == level

    def test_every_question_has_four_options(self, bundled_bank):
        for level in CEFRLevel:
            for question in bundled_bank.get_questions_by_level(level):
                assert len(question.options) == 4
                assert 0 <= question.correct_answer < 4


class TestLookup:

    def test_get_question_by_id(self):
        bank = build_small_bank()
        question = bank.get_question("b2-q-1")
        assert question.level == CEFRLevel.B2

    def test_unknown_id_raises(self):
        bank = build_small_bank()
        with pytest.raises(QuestionNotFoundError) as exc_info:
            bank.get_question("b2-missing")
        assert exc_info.value.error_code == "QUESTION_NOT_FOUND"
        assert exc_info.value.details["question_id"] == "b2-missing"

    def test_id_without_level_prefix_is_not_found(self):
        bank = build_small_bank()
        assert bank.find_question("vocab-1") is None

    def test_random_question_prefers_unasked(self):
        bank = build_small_bank(per_level=3)
        asked = ["a1-q-0", "a1-q-1"]
        for _ in range(10):
            assert bank.get_random_question(CEFRLevel.A1, exclude=asked).id == "a1-q-2"

    def test_random_question_repeats_once_level_is_exhausted(self):
        bank = build_small_bank(per_level=2)
        question = bank.get_random_question(CEFRLevel.A1, exclude=["a1-q-0", "a1-q-1"])
        assert question is not None
        assert question.level == CEFRLevel.A1

    def test_empty_level_returns_none(self):
        bank = QuestionBank([make_question("a1-only", CEFRLevel.A1)])
        assert bank.get_random_question(CEFRLevel.C1) is None

    def test_supported_levels(self):
        assert QuestionBank.available_levels() == [
            CEFRLevel.A1, CEFRLevel.A2, CEFRLevel.B1, CEFRLevel.B2, CEFRLevel.C1
        ]
        assert QuestionBank.is_supported_level("B2")
        assert not QuestionBank.is_supported_level("C2")


class TestIntegrity:

    def test_duplicate_ids_rejected(self):
        question = make_question("a1-dup", CEFRLevel.A1)
        with pytest.raises(ValueError, match="Duplicate"):
            QuestionBank([question, question])

    def test_prefix_level_mismatch_rejected(self):
        with pytest.raises(ValueError, match="does not match"):
            QuestionBank([make_question("a1-misfiled", CEFRLevel.B2)])

    def test_load_from_custom_file(self, tmp_path):
        path = tmp_path / "questions.json"
        path.write_text(json.dumps([
            make_question("c1-custom", CEFRLevel.C1, QuestionCategory.READING).model_dump(mode="json")
        ]))

        bank = QuestionBank.from_json(path)

        assert len(bank) == 1
        assert bank.get_question("c1-custom").category == QuestionCategory.READING
