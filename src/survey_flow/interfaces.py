"""Abstract interfaces for the external services the flow engine consumes.

These ABCs define the contract that external implementations must fulfil.
The SDK ships no concrete implementations — adapters for a particular text
generation backend live outside this package and are injected at startup.

Typical integration flow::

    judge: JudgmentService = MyJudgmentService(...)
    engine = FlowEngine(tree, judge=judge)

    step = await engine.start(answers)
    # ... present step.question, collect the respondent's reply ...
    step = await engine.advance(step.cursor, answers, reply)

    generator: QuestionGenerator = MyQuestionGenerator(...)
    proposed = await generator.generate(GenerationRequest(prompt="Car ownership"))

Engine code never calls these directly: it goes through the guards in
``survey_flow.judgment``, which add timeouts and the permissive fallback.
Implementations may raise ``ExternalServiceFault`` (or anything else) on
failure.
"""

from abc import ABC, abstractmethod
from typing import Optional

from survey_flow.models.judgment import (
    AnswerJudgment,
    GeneratedQuestion,
    GenerationRequest,
    QAPair,
    ShouldAskResult,
)


class QuestionGenerator(ABC):
    """Interface for AI-assisted question generation.

    The SDK imposes no constraints on *how* questions are produced; only
    the input/output contract is specified here.
    """

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> list[GeneratedQuestion]:
        """Propose survey questions for a topic.

        Parameters
        ----------
        request:
            Topic prompt plus optional instructions, examples, a question
            bank to draw from, the number of questions wanted and question
            texts that must not be repeated.

        Returns
        -------
        list[GeneratedQuestion]
            Proposed questions, in presentation order.
        """
        ...

    @abstractmethod
    async def generate_follow_ups(self, qa_pairs: list[QAPair]) -> list[str]:
        """Propose personalised follow-up questions from a finished submission.

        Parameters
        ----------
        qa_pairs:
            The respondent's answered questions, in document order.

        Returns
        -------
        list[str]
            Natural-language follow-up question texts.
        """
        ...


class JudgmentService(ABC):
    """Interface for the judgment calls made during a flow.

    Both calls are advisory: when they fail or time out the engine behaves
    as if the question should be asked and the answer is valid.
    """

    @abstractmethod
    async def should_ask(
        self, question: str, previous_answers: list[QAPair]
    ) -> ShouldAskResult:
        """Decide whether a structurally visible question is still relevant.

        ``previous_answers`` holds only visible, answered questions that come
        before ``question`` in document order.  It is never empty.
        """
        ...

    @abstractmethod
    async def validate_answer(
        self,
        question: str,
        answer: str,
        expected_answers: Optional[list[str]] = None,
    ) -> AnswerJudgment:
        """Judge whether a free-text answer makes sense for the question."""
        ...
