"""SubmissionValidator tests — per-question errors for form and chat submissions."""

import pytest

from helpers.fakes import FakeJudge
from survey_flow.constants import INVALID_OPTION_MESSAGE, REQUIRED_MESSAGE
from survey_flow.models.answer import AnswerStore
from survey_flow.tree import QuestionTree
from survey_flow.validator import SubmissionValidator, validate_submission


def car_answers(**overrides):
    base = {
        "q_car": "Yes",
        "q_car_model": "Civic",
        "q_car_fuel": "Electric",
        "q_charging": ["Home"],
        "q_commute": 12,
    }
    base.update(overrides)
    return AnswerStore.from_payload({k: v for k, v in base.items() if v is not None})


class TestFormSubmission:

    @pytest.mark.asyncio
    async def test_complete_answers_pass(self, car_tree):
        report = await validate_submission(car_tree, car_answers())
        assert report.ok
        assert report.errors == {}
        assert report.visible_question_ids == [
            "q_car", "q_car_model", "q_car_fuel", "q_charging", "q_commute",
        ]

    @pytest.mark.asyncio
    async def test_missing_visible_answer(self, car_tree):
        report = await validate_submission(car_tree, car_answers(q_charging=None))
        assert not report.ok
        assert report.errors == {"q_charging": REQUIRED_MESSAGE}

    @pytest.mark.asyncio
    async def test_hidden_questions_ignored(self, car_tree):
        answers = AnswerStore.from_payload({
            "q_car": "No",
            "q_car_model": "",
            "q_car_fuel": "Nuclear",
            "q_car_plans": "no",
            "q_commute": "5",
        })
        report = await validate_submission(car_tree, answers)
        assert report.ok
        assert report.visible_question_ids == ["q_car", "q_car_plans", "q_commute"]

    @pytest.mark.asyncio
    async def test_range_and_option_errors(self, car_tree):
        report = await validate_submission(
            car_tree, car_answers(q_car_fuel="Steam", q_commute=900),
        )
        assert report.errors == {
            "q_car_fuel": INVALID_OPTION_MESSAGE,
            "q_commute": "Please enter a number between 0 and 500.",
        }

    @pytest.mark.asyncio
    async def test_iterative_errors_keyed_by_iteration(self, pet_tree):
        answers = AnswerStore.from_payload({
            "q_pets": 2,
            "q_pet_name": {"is_iterative": True, "values": ["Rex", ""]},
            "q_pet_kind": {"is_iterative": True, "values": ["Dog", "Lizard"]},
            "q_pet_food": ["Treats"],
            "q_pet_comment": "Both are rescues",
        })
        report = await validate_submission(pet_tree, answers)
        assert report.errors == {
            "q_pet_name-1": REQUIRED_MESSAGE,
            "q_pet_kind-1": INVALID_OPTION_MESSAGE,
        }

    @pytest.mark.asyncio
    async def test_missing_iteration_slots_required(self, pet_tree):
        answers = AnswerStore.from_payload({
            "q_pets": 3,
            "q_pet_name": {"is_iterative": True, "values": ["Rex"]},
            "q_pet_kind": {"is_iterative": True, "values": ["Dog", "Cat", "Fish"]},
            "q_pet_food": "Treats",
            "q_pet_comment": "-",
        })
        report = await validate_submission(pet_tree, answers)
        assert report.errors == {
            "q_pet_name-1": REQUIRED_MESSAGE,
            "q_pet_name-2": REQUIRED_MESSAGE,
        }


class TestSemanticValidation:

    @pytest.mark.asyncio
    async def test_judge_rejects_text(self, car_tree):
        judge = FakeJudge(invalid={"asdf": "Please name a car model."})
        report = await validate_submission(car_tree, car_answers(q_car_model="asdf"), judge)
        assert report.errors == {"q_car_model": "Please name a car model."}

    @pytest.mark.asyncio
    async def test_empty_suggestion_falls_back_to_generic_message(self, car_tree):
        judge = FakeJudge(invalid={"asdf": ""})
        report = await validate_submission(car_tree, car_answers(q_car_model="asdf"), judge)
        assert report.errors == {"q_car_model": "This answer seems invalid."}

    @pytest.mark.asyncio
    async def test_required_check_runs_before_judge(self, car_tree):
        judge = FakeJudge()
        report = await validate_submission(car_tree, car_answers(q_car_model="  "), judge)
        assert report.errors == {"q_car_model": REQUIRED_MESSAGE}
        assert judge.validate_calls == []

    @pytest.mark.asyncio
    async def test_failing_judge_accepts(self, car_tree):
        report = await validate_submission(
            car_tree, car_answers(q_car_model="asdf"), FakeJudge(error=True),
        )
        assert report.ok


class TestChatSubmission:

    @pytest.mark.asyncio
    async def test_vetoed_question_not_required(self, car_tree):
        judge = FakeJudge(skip={"What is the model of your car?"})
        answers = car_answers(q_car_model=None)

        form = await SubmissionValidator(car_tree, judge).validate(answers)
        assert form.errors == {"q_car_model": REQUIRED_MESSAGE}

        chat = await SubmissionValidator(car_tree, judge).validate(answers, apply_veto=True)
        assert chat.ok
        assert "q_car_model" not in chat.visible_question_ids


class TestSingleRequiredQuestion:

    @pytest.mark.asyncio
    async def test_one_error_then_ok(self):
        tree = QuestionTree.from_dicts([{"id": "q1", "text": "Your name?", "type": "text"}])
        judge = FakeJudge()
        answers = AnswerStore()

        report = await validate_submission(tree, answers, judge)
        assert not report.ok
        assert report.errors == {"q1": REQUIRED_MESSAGE}

        answers.record("q1", "Ann")
        report = await validate_submission(tree, answers, judge)
        assert report.ok


class TestIterationSourceOutOfRange:

    @pytest.mark.asyncio
    async def test_huge_count_reports_only_the_source(self, pet_tree):
        answers = AnswerStore.from_payload({"q_pets": 2_000_000})
        report = await validate_submission(pet_tree, answers)
        assert report.errors == {
            "q_pets": "Please enter a number between 0 and 20.",
            "q_pet_food": REQUIRED_MESSAGE,
            "q_pet_comment": REQUIRED_MESSAGE,
        }
        assert report.visible_question_ids == ["q_pets", "q_pet_food", "q_pet_comment"]


class TestNormalisedTriggers:

    @pytest.mark.asyncio
    async def test_children_of_normalised_replies_are_required(self):
        tree = QuestionTree.from_dicts([
            {"id": "colors", "text": "Favourite colours?", "type": "multiple-choice-multi",
             "options": ["Red", "Blue"], "sub_questions": [
                 {"id": "why_red", "text": "Why red?", "type": "text",
                  "trigger_condition_value": "Red"},
             ]},
            {"id": "size", "text": "Which size?", "type": "multiple-choice",
             "options": ["Big", "Small"], "sub_questions": [
                 {"id": "why_big", "text": "Why big?", "type": "text",
                  "trigger_condition_value": "Big"},
             ]},
        ])
        answers = AnswerStore.from_payload({"colors": "Red, Blue", "size": "1"})
        report = await validate_submission(tree, answers)
        assert not report.ok
        assert report.errors == {"why_red": REQUIRED_MESSAGE, "why_big": REQUIRED_MESSAGE}
        assert report.visible_question_ids == ["colors", "why_red", "size", "why_big"]
