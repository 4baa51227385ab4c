"""Guards around the external judgment and generation services.

Every call is bounded by ``asyncio.wait_for`` and fails open:

  - should-ask: timeout / error -> ask the question
  - answer validation: timeout / error -> answer is valid
  - generation: timeout / error -> no questions

Failures are logged at warning level and never propagate to the caller.
A guard built without a service behaves as if every call succeeded with
the permissive default, so callers never need to check for ``None``.
"""

from __future__ import annotations

import asyncio
import logging

from survey_flow.constants import GENERATION_TIMEOUT_SECONDS, JUDGMENT_TIMEOUT_SECONDS
from survey_flow.interfaces import JudgmentService, QuestionGenerator
from survey_flow.models.answer import answer_to_text
from survey_flow.models.judgment import (
    AnswerJudgment,
    GeneratedQuestion,
    GenerationRequest,
    QAPair,
    ShouldAskResult,
)
from survey_flow.models.question import Question

logger = logging.getLogger(__name__)


class GuardedJudgment:
    """Timeout-bounded, fail-open wrapper around a ``JudgmentService``."""

    def __init__(
        self,
        service: JudgmentService | None = None,
        timeout: float = JUDGMENT_TIMEOUT_SECONDS,
    ) -> None:
        self.service = service
        self.timeout = timeout

    @classmethod
    def wrap(cls, judge: JudgmentService | GuardedJudgment | None) -> GuardedJudgment:
        """Return ``judge`` unchanged if already guarded, else guard it."""
        if isinstance(judge, GuardedJudgment):
            return judge
        return cls(judge)

    async def should_ask(self, question: Question, history: list[QAPair]) -> bool:
        """True unless the service explicitly vetoes the question.

        An empty history means there is nothing to judge against, so the
        service is not called.
        """
        if self.service is None or not history:
            return True
        try:
            result = await asyncio.wait_for(
                self.service.should_ask(question.text, history), self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "should_ask timed out after %.1fs for %s; asking anyway",
                self.timeout, question.id,
            )
            return True
        except Exception as exc:
            logger.warning("should_ask failed for %s: %s; asking anyway", question.id, exc)
            return True

        if not isinstance(result, ShouldAskResult):
            logger.warning(
                "should_ask returned %s for %s; asking anyway",
                type(result).__name__, question.id,
            )
            return True
        if not result.ask:
            logger.info("Question %s skipped by judgment: %s", question.id, result.reason)
        return result.ask

    async def validate_answer(self, question: Question, answer: object) -> AnswerJudgment:
        """Semantic check for a free-text answer; failures count as valid."""
        if self.service is None:
            return AnswerJudgment(valid=True)
        try:
            result = await asyncio.wait_for(
                self.service.validate_answer(
                    question.text,
                    answer_to_text(answer),
                    question.expected_answers or None,
                ),
                self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "validate_answer timed out after %.1fs for %s; accepting answer",
                self.timeout, question.id,
            )
            return AnswerJudgment(valid=True)
        except Exception as exc:
            logger.warning(
                "validate_answer failed for %s: %s; accepting answer", question.id, exc
            )
            return AnswerJudgment(valid=True)

        if not isinstance(result, AnswerJudgment):
            logger.warning(
                "validate_answer returned %s for %s; accepting answer",
                type(result).__name__, question.id,
            )
            return AnswerJudgment(valid=True)
        return result


class GuardedGenerator:
    """Timeout-bounded wrapper around a ``QuestionGenerator``; failures yield nothing."""

    def __init__(
        self,
        service: QuestionGenerator | None = None,
        timeout: float = GENERATION_TIMEOUT_SECONDS,
    ) -> None:
        self.service = service
        self.timeout = timeout

    @property
    def available(self) -> bool:
        return self.service is not None

    async def generate(self, request: GenerationRequest) -> list[GeneratedQuestion]:
        if self.service is None:
            logger.warning("No question generator configured; returning no questions")
            return []
        try:
            questions = await asyncio.wait_for(self.service.generate(request), self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Question generation timed out after %.1fs", self.timeout)
            return []
        except Exception as exc:
            logger.warning("Question generation failed: %s", exc)
            return []

        # Drop anything repeating a question the caller asked us to avoid
        avoid = {text.strip().lower() for text in request.avoid}
        kept = [q for q in questions or [] if q.text.strip().lower() not in avoid]
        logger.info("Generated %d questions (%d requested)", len(kept), request.count)
        return kept[:request.count]

    async def generate_follow_ups(self, qa_pairs: list[QAPair]) -> list[str]:
        if self.service is None:
            logger.warning("No question generator configured; returning no follow-ups")
            return []
        try:
            texts = await asyncio.wait_for(
                self.service.generate_follow_ups(qa_pairs), self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Follow-up generation timed out after %.1fs", self.timeout)
            return []
        except Exception as exc:
            logger.warning("Follow-up generation failed: %s", exc)
            return []
        return [t.strip() for t in texts or [] if t and t.strip()]
