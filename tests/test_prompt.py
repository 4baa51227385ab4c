"""PromptManager tests — verify prompt rendering for the external services
and the plain chat messages.

Steps are built directly from the engine payload models (no engine needed)
except where a real step from the car survey reads more clearly.
"""

import pytest

from survey_flow.engine import FlowEngine
from survey_flow.models.judgment import GenerationRequest, QAPair
from survey_flow.models.session import (
    CompletionStep,
    FlowCursor,
    QuestionPayload,
    QuestionStep,
)
from survey_flow.prompt import PromptManager

HISTORY = [
    QAPair(question="Do you own a car?", answer="Yes", question_id="q_car"),
    QAPair(question="What does your car run on?", answer="Electric", question_id="q_car_fuel"),
]


# =====================================================================
# Fixtures
# =====================================================================


@pytest.fixture
def pm():
    """Fresh PromptManager for each test."""
    return PromptManager()


def name_step(iteration=0, count=2, error=None):
    return QuestionStep(
        cursor=FlowCursor.asking("q_pet_name", iteration),
        question=QuestionPayload(
            id="q_pet_name", text="What is the name of your pet?", type="text",
            is_iterative=True,
        ),
        iteration=iteration,
        iteration_count=count,
        error=error,
    )


# =====================================================================
# Bot messages
# =====================================================================


class TestBotMessage:

    @pytest.mark.asyncio
    async def test_first_question_lists_options(self, pm, car_tree, answers):
        step = await FlowEngine(car_tree).start(answers)
        assert pm.render_bot_message(step, is_first=True) == (
            "Do you own a car? Your options are: Yes, No."
        )

    @pytest.mark.asyncio
    async def test_next_question(self, pm, car_tree, answers):
        engine = FlowEngine(car_tree)
        step = await engine.start(answers)
        step = await engine.advance(step.cursor, answers, "Yes")
        assert pm.render_bot_message(step) == "Next question: What is the model of your car?"

    @pytest.mark.asyncio
    async def test_rejected_answer_repeats_question(self, pm, car_tree, answers):
        engine = FlowEngine(car_tree)
        step = await engine.start(answers)
        step = await engine.advance(step.cursor, answers, "maybe")
        assert pm.render_bot_message(step) == (
            "Please choose one of the available options. "
            "Do you own a car? Your options are: Yes, No."
        )

    def test_iteration_counter(self, pm):
        assert pm.render_bot_message(name_step(iteration=1)) == (
            "Next question: What is the name of your pet? (2/2)"
        )

    def test_completion(self, pm):
        step = CompletionStep(cursor=FlowCursor.complete())
        assert pm.render_bot_message(step) == "Thank you! Your answers are ready to submit."


# =====================================================================
# Chat turn prompts
# =====================================================================


class TestChatTurn:

    def test_first_turn_welcomes(self, pm):
        prompt = pm.render_chat_turn(name_step(), is_first=True)
        assert "welcome" in prompt
        assert "What is the name of your pet?" in prompt
        assert "repetition 1 of 2" in prompt

    def test_error_turn_quotes_reply(self, pm):
        prompt = pm.render_chat_turn(name_step(error="Please give a name."), answer="???")
        assert '"???"' in prompt
        assert "Please give a name." in prompt
        assert "ask the same question again" in prompt

    def test_last_turn_thanks(self, pm):
        step = CompletionStep(cursor=FlowCursor.complete())
        prompt = pm.render_chat_turn(step, answer="12")
        assert "last question" in prompt
        assert "Question to present" not in prompt

    def test_language_injected(self):
        prompt = PromptManager(language="Thai").render_chat_turn(name_step(), is_first=True)
        assert "in Thai" in prompt


# =====================================================================
# Judgment and generation prompts
# =====================================================================


class TestServicePrompts:

    def test_should_ask_includes_history(self, pm):
        prompt = pm.render_should_ask("Where do you usually charge it?", HISTORY)
        assert "Q: Do you own a car? → A: Yes" in prompt
        assert "Q: What does your car run on? → A: Electric" in prompt
        assert "Candidate question: Where do you usually charge it?" in prompt
        assert '"ask"' in prompt

    def test_validate_answer_lists_expected(self, pm):
        prompt = pm.render_validate_answer(
            "What is the model of your car?", "Civic", ["Toyota Corolla", "Honda Civic"],
        )
        assert "Answer: Civic" in prompt
        assert "Toyota Corolla, Honda Civic" in prompt

    def test_validate_answer_without_expected(self, pm):
        prompt = pm.render_validate_answer("Anything else?", "No")
        assert "had in mind" not in prompt

    def test_generation_prompt(self, pm):
        request = GenerationRequest(
            prompt="Household cars", instructions="Keep it short", count=3,
            avoid=["Do you own a car?"],
        )
        prompt = pm.render_generation(request)
        assert "Topic: Household cars" in prompt
        assert "Keep it short" in prompt
        assert "- Do you own a car?" in prompt
        assert "Write 3 questions in English" in prompt
        assert '"multiple-choice-multi"' in prompt
        assert "Question bank" not in prompt

    def test_follow_up_prompt(self, pm):
        prompt = pm.render_follow_ups(HISTORY, count=2)
        assert "Write 2 open-ended" in prompt
        assert "A: Electric" in prompt
