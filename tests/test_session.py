"""FlowSession tests — cursor bookkeeping, provenance and busy rejection."""

import asyncio

import pytest

from helpers.fakes import BlockingJudge
from survey_flow.engine import FlowEngine
from survey_flow.exceptions import FlowBusyError
from survey_flow.session import FlowSession


@pytest.mark.asyncio
async def test_full_pass(car_tree):
    session = FlowSession(FlowEngine(car_tree))
    step = await session.start()
    for reply in ["No", "No", "30"]:
        assert step.type == "question"
        step = await session.submit(reply)

    assert session.complete
    assert step.type == "complete"
    assert session.answers.snapshot() == {"q_car": "No", "q_car_plans": "No", "q_commute": 30}


@pytest.mark.asyncio
async def test_presented_questions_carry_timing(car_tree):
    session = FlowSession(FlowEngine(car_tree))
    await session.start()
    await session.submit("Yes")

    entry = session.answers.get("q_car")
    assert entry.started_at is not None
    assert entry.answered_at is not None
    assert entry.time_taken_seconds >= 0
    # The next question has been presented but not answered
    pending = session.answers.get("q_car_model")
    assert pending.started_at is not None
    assert not session.answers.has_answer("q_car_model")


@pytest.mark.asyncio
async def test_rejected_answer_keeps_cursor(car_tree):
    session = FlowSession(FlowEngine(car_tree))
    await session.start()
    step = await session.submit("perhaps")
    assert step.error is not None
    assert session.cursor.question_id == "q_car"
    assert (await session.current()).question.id == "q_car"


@pytest.mark.asyncio
async def test_submit_before_start(car_tree):
    session = FlowSession(FlowEngine(car_tree))
    with pytest.raises(ValueError, match="Cannot advance"):
        await session.submit("Yes")


@pytest.mark.asyncio
async def test_reset(car_tree):
    session = FlowSession(FlowEngine(car_tree))
    await session.start()
    await session.submit("Yes")
    session.reset()
    assert len(session.answers) == 0
    assert session.cursor.status == "not_started"


@pytest.mark.asyncio
async def test_second_submit_while_busy_is_rejected(car_tree):
    """A reply sent while the previous one is still being judged is refused, not queued."""
    judge = BlockingJudge()
    session = FlowSession(FlowEngine(car_tree, judge=judge))
    await session.start()
    await session.submit("Yes")
    assert session.cursor.question_id == "q_car_model"

    # Free-text answer -> semantic check blocks on the judge
    pending = asyncio.create_task(session.submit("Civic"))
    for _ in range(10):
        if session.busy:
            break
        await asyncio.sleep(0)
    assert session.busy

    with pytest.raises(FlowBusyError, match="q_car_model"):
        await session.submit("Corolla")

    judge.release.set()
    step = await pending
    assert step.question.id == "q_car_fuel"
    assert session.answers.value("q_car_model") == "Civic"
    assert not session.busy
