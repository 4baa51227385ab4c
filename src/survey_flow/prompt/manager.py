"""PromptManager — Jinja2-based prompt renderer for the external services.

Loads templates from the ``template/`` directory.  Adapters implementing
``JudgmentService`` / ``QuestionGenerator`` use it to build their prompts;
the chat endpoints use it to phrase the next question.

The respondent language is fixed per manager and passed to every template.
"""

from __future__ import annotations

import json
from pathlib import Path

import jinja2

from survey_flow.models.judgment import GenerationRequest, QAPair
from survey_flow.models.session import FlowStep, QuestionPayload

# Question types offered to the generator
_GENERATED_TYPES = ["text", "number", "yes-no", "multiple-choice", "multiple-choice-multi"]


def _option_labels(question: QuestionPayload) -> list[str]:
    return [opt["text"] for opt in question.options or []]


class PromptManager:
    """Jinja2-based prompt renderer.

    Args:
        template_dir: optional override for the template directory.
            Defaults to ``template/`` sibling of this module.
        language: respondent language name used in every prompt
    """

    def __init__(self, template_dir: Path | None = None, language: str = "English") -> None:
        if template_dir is None:
            template_dir = Path(__file__).parent / "template"
        self.language = language
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._env.filters["tojson"] = lambda v: json.dumps(v, ensure_ascii=False)

    def render(self, template_name: str, **context) -> str:
        """Render a named template with arbitrary context (``language`` injected)."""
        context.setdefault("language", self.language)
        template = self._env.get_template(template_name)
        return template.render(**context).strip()

    # --- Judgment prompts ---

    def render_should_ask(self, question: str, history: list[QAPair]) -> str:
        return self.render("should_ask.jinja2", question=question, history=history)

    def render_validate_answer(
        self,
        question: str,
        answer: str,
        expected_answers: list[str] | None = None,
    ) -> str:
        return self.render(
            "validate_answer.jinja2",
            question=question,
            answer=answer,
            expected_answers=expected_answers or [],
        )

    # --- Generation prompts ---

    def render_generation(self, request: GenerationRequest) -> str:
        return self.render(
            "generate_questions.jinja2", request=request, types=_GENERATED_TYPES,
        )

    def render_follow_ups(self, history: list[QAPair], count: int = 3) -> str:
        return self.render("follow_up_questions.jinja2", history=history, count=count)

    # --- Chat mode ---

    def render_chat_turn(
        self,
        step: FlowStep,
        *,
        answer: str | None = None,
        is_first: bool = False,
    ) -> str:
        """Prompt for a conversational reply around the next chat step.

        Covers the welcome (``is_first``), acknowledge-and-ask, re-ask after
        a rejected answer (``step.error``) and the closing message
        (completion step).
        """
        if step.type == "complete":
            return self.render(
                "chat_turn.jinja2", question=None, answer=answer,
                is_first=False, is_last=True, error=None,
            )
        return self.render(
            "chat_turn.jinja2",
            question=step.question,
            options=_option_labels(step.question),
            iteration=step.iteration,
            iteration_count=step.iteration_count,
            answer=answer,
            is_first=is_first,
            is_last=False,
            error=step.error,
        )

    def render_bot_message(self, step: FlowStep, *, is_first: bool = False) -> str:
        """Plain (no model call) chat message presenting the step's question."""
        if step.type == "complete":
            return "Thank you! Your answers are ready to submit."
        return self.render(
            "bot_message.jinja2",
            question=step.question,
            options=_option_labels(step.question),
            iteration=step.iteration,
            iteration_count=step.iteration_count,
            is_first=is_first,
            error=step.error,
        )
