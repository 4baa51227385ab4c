"""FlowSession — in-process chat-mode session: engine + answer store + cursor.

Serialises advancement: while one reply is being validated (which may
await the judgment service) a second ``submit()`` raises
``FlowBusyError`` instead of queueing.

Usage::

    session = FlowSession(FlowEngine(tree, judge=judge))
    step = await session.start()
    while step.type == "question":
        step = await session.submit(read_reply(step))
    answers = session.answers.snapshot()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from survey_flow.engine import FlowEngine
from survey_flow.exceptions import FlowBusyError
from survey_flow.models.answer import AnswerStore
from survey_flow.models.session import FlowCursor, FlowStep

logger = logging.getLogger(__name__)


class FlowSession:
    """One respondent's pass through a survey in chat mode."""

    def __init__(self, engine: FlowEngine, answers: AnswerStore | None = None) -> None:
        self.engine = engine
        self.answers = answers if answers is not None else AnswerStore()
        self.cursor = FlowCursor()
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @property
    def complete(self) -> bool:
        return self.cursor.status == "complete"

    async def start(self) -> FlowStep:
        """Resolve the first question (or completion) and record its start time."""
        async with self._lock:
            step = await self.engine.start(self.answers)
            return self._enter(step)

    async def current(self) -> FlowStep:
        return await self.engine.current_step(self.cursor, self.answers)

    async def submit(self, value: Any) -> FlowStep:
        """Answer the current question.

        Raises:
            FlowBusyError: a previous ``submit()`` has not finished yet
            ValueError: the session has not started or is complete
        """
        if self._lock.locked():
            raise FlowBusyError(self.cursor.question_id)
        async with self._lock:
            step = await self.engine.advance(self.cursor, self.answers, value)
            return self._enter(step)

    def reset(self) -> None:
        """Discard answers and cursor (abandoned or submitted session)."""
        self.answers.clear()
        self.cursor = FlowCursor()

    def _enter(self, step: FlowStep) -> FlowStep:
        self.cursor = step.cursor
        if step.type == "question" and step.error is None:
            self.answers.mark_started(step.cursor.question_id)
        return step
