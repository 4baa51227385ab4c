"""AnswerStore tests — recording, iteration slots, provenance and wire shape."""

from datetime import datetime, timedelta, timezone

import pytest

from survey_flow.models.answer import AnswerStore, answer_to_text, is_empty


class TestHelpers:

    def test_is_empty(self):
        assert is_empty(None)
        assert is_empty("  ")
        assert is_empty([])
        assert not is_empty(0)
        assert not is_empty(False)
        assert not is_empty(["x"])

    def test_answer_to_text(self):
        assert answer_to_text(["Home", "", "Work"]) == "Home, Work"
        assert answer_to_text(None) == ""
        assert answer_to_text(3) == "3"


class TestRecord:

    def test_record_scalar(self, answers):
        answers.record("q_car", "Yes")
        assert answers.value("q_car") == "Yes"
        assert answers.has_answer("q_car")
        assert "q_car" in answers

    def test_record_iteration_pads_slots(self, answers):
        answers.record("q_pet_name", "Tom", iteration=2)
        assert answers.value("q_pet_name") == [None, None, "Tom"]
        assert answers.iteration_value("q_pet_name", 2) == "Tom"
        assert answers.iteration_value("q_pet_name", 0) is None
        assert answers.iteration_value("q_pet_name", 9) is None

    def test_record_overwrites_slot(self, answers):
        answers.record("q_pet_name", "Rex", iteration=0)
        answers.record("q_pet_name", "Max", iteration=0)
        assert answers.value("q_pet_name") == ["Max"]

    def test_negative_iteration_rejected(self, answers):
        with pytest.raises(ValueError):
            answers.record("q_pet_name", "Rex", iteration=-1)

    def test_iterative_with_only_blank_slots_has_no_answer(self, answers):
        answers.record("q_pet_name", "", iteration=1)
        assert not answers.has_answer("q_pet_name")

    def test_discard_and_clear(self, answers):
        answers.record("a", 1)
        answers.record("b", 2)
        answers.discard("a")
        assert answers.value("a") is None
        assert len(answers) == 1
        answers.clear()
        assert len(answers) == 0


class TestProvenance:

    def test_time_taken_from_first_presentation(self, answers):
        t0 = datetime(2026, 1, 1, tzinfo=timezone.utc)
        answers.mark_started("q_car", at=t0)
        # A second presentation keeps the original start
        answers.mark_started("q_car", at=t0 + timedelta(seconds=3))
        entry = answers.record("q_car", "Yes", at=t0 + timedelta(seconds=5))
        assert entry.started_at == t0
        assert entry.answered_at == t0 + timedelta(seconds=5)
        assert entry.time_taken_seconds == 5.0

    def test_no_time_taken_without_start(self, answers):
        entry = answers.record("q_car", "Yes")
        assert entry.answered_at is not None
        assert entry.time_taken_seconds is None


class TestWireShape:

    def test_payload_round_trip(self):
        payload = {
            "q_pets": 2,
            "q_pet_food": ["Treats", "Dry food"],
            "q_pet_name": {"is_iterative": True, "values": ["Rex", None]},
        }
        store = AnswerStore.from_payload(payload)
        assert store.value("q_pet_name") == ["Rex", None]
        assert store.get("q_pet_name").is_iterative
        assert not store.get("q_pets").is_iterative
        assert store.snapshot() == payload

    def test_empty_payload(self):
        assert len(AnswerStore.from_payload(None)) == 0
