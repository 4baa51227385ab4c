"""HTTP API tests — routes, status-code mapping and the chat round trip.

The app is built with ``create_app()`` and its ``app.state`` singletons are
set directly (the lifespan handler is not run), with the in-memory
repositories from ``test_service`` behind the service and ``get_db``
overridden to yield a ``MockDB``.
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from survey_flow.prompt import PromptManager
from survey_flow.service import SurveyService
from survey_server.app import create_app
from survey_server.config import ServerSettings
from survey_server.dependencies import get_db

# Import mock infrastructure from test_service
from test_service import MockDB, MockSubmissionRepository, MockSurveyRepository

API = "/api/v1"


# =====================================================================
# Fixtures
# =====================================================================


@pytest.fixture
def client(library, survey_dir):
    app = create_app(settings=ServerSettings(survey_dir=str(survey_dir), log_level="WARNING"))
    app.state.library = library
    app.state.service = SurveyService(
        survey_repo=MockSurveyRepository(),
        submission_repo=MockSubmissionRepository(),
    )
    app.state.prompts = PromptManager()

    db = MockDB()

    async def _db():
        yield db

    app.dependency_overrides[get_db] = _db
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def car_survey_id(client, library):
    questions = [q.model_dump(mode="json") for q in library.get("car_ownership").questions]
    resp = client.post(f"{API}/surveys", json={"title": "Cars", "questions": questions})
    assert resp.status_code == 201
    return resp.json()["id"]


def question_ids(client, survey_id):
    """Map question text -> stored id."""
    out = {}

    def walk(nodes):
        for node in nodes:
            out[node["text"]] = node["id"]
            walk(node.get("sub_questions", []))

    walk(client.get(f"{API}/surveys/{survey_id}").json()["questions"])
    return out


# =====================================================================
# Library
# =====================================================================


class TestLibrary:

    def test_list(self, client):
        resp = client.get(f"{API}/library")
        assert resp.status_code == 200
        by_name = {item["name"]: item for item in resp.json()}
        assert by_name["car_ownership"]["question_count"] == 6
        assert by_name["household_pets"]["title"] == "Household pets"

    def test_get(self, client):
        resp = client.get(f"{API}/library/car_ownership")
        assert resp.status_code == 200
        assert resp.json()["questions"][0]["id"] == "q_car"

    def test_unknown_is_404(self, client):
        assert client.get(f"{API}/library/boats").status_code == 404


# =====================================================================
# Surveys
# =====================================================================


class TestSurveys:

    def test_create_and_get(self, client, car_survey_id):
        resp = client.get(f"{API}/surveys/{car_survey_id}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["title"] == "Cars"
        assert body["questions"][0]["text"] == "Do you own a car?"

    def test_malformed_tree_is_400_with_reason(self, client):
        resp = client.post(f"{API}/surveys", json={"title": "Broken", "questions": [
            {"id": "a", "text": "A?", "type": "text", "parent_question_id": "ghost"},
        ]})
        assert resp.status_code == 400
        assert "missing parent" in resp.json()["detail"]

    def test_unknown_survey_is_404(self, client):
        assert client.get(f"{API}/surveys/{uuid.uuid4()}").status_code == 404
        assert client.get(f"{API}/surveys/not-a-uuid").status_code == 404

    def test_list_and_delete(self, client, car_survey_id):
        assert [s["id"] for s in client.get(f"{API}/surveys").json()] == [car_survey_id]
        assert client.delete(f"{API}/surveys/{car_survey_id}").status_code == 204
        assert client.get(f"{API}/surveys/{car_survey_id}").status_code == 404

    def test_generate_without_generator_is_empty(self, client):
        resp = client.post(f"{API}/surveys/generate", json={"prompt": "Cycling"})
        assert resp.status_code == 200
        assert resp.json() == {"questions": []}


# =====================================================================
# Flow
# =====================================================================


class TestFlow:

    def test_visible(self, client, car_survey_id):
        ids = question_ids(client, car_survey_id)
        resp = client.post(f"{API}/surveys/{car_survey_id}/visible", json={
            "answers": {ids["Do you own a car?"]: "No"},
        })
        assert resp.status_code == 200
        assert [vq["question"]["text"] for vq in resp.json()] == [
            "Do you own a car?",
            "Are you planning to buy a car in the next year?",
            "How many kilometres do you commute per day?",
        ]

    def test_chat_round_trip(self, client, car_survey_id):
        resp = client.post(f"{API}/surveys/{car_survey_id}/chat/start", json={"answers": {}})
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Do you own a car? Your options are: Yes, No."

        resp = client.post(f"{API}/surveys/{car_survey_id}/chat/advance", json={
            "cursor": body["step"]["cursor"], "answers": body["answers"], "value": "maybe",
        })
        retry = resp.json()
        assert retry["step"]["error"] is not None
        assert retry["step"]["cursor"] == body["step"]["cursor"]

        resp = client.post(f"{API}/surveys/{car_survey_id}/chat/advance", json={
            "cursor": retry["step"]["cursor"], "answers": retry["answers"], "value": "no",
        })
        step = resp.json()
        assert step["step"]["question"]["text"] == "Are you planning to buy a car in the next year?"
        assert list(step["answers"].values()) == ["No"]

    def test_stale_cursor_is_409(self, client, car_survey_id):
        ids = question_ids(client, car_survey_id)
        resp = client.post(f"{API}/surveys/{car_survey_id}/chat/advance", json={
            "cursor": {"status": "asking", "question_id": ids["What is the model of your car?"]},
            "answers": {ids["Do you own a car?"]: "No"},
            "value": "Civic",
        })
        assert resp.status_code == 409

    def test_chat_prompt(self, client, car_survey_id):
        resp = client.post(f"{API}/surveys/{car_survey_id}/chat/prompt", json={
            "cursor": {"status": "not_started"}, "answers": {},
        })
        assert resp.status_code == 200
        assert "Do you own a car?" in resp.json()["prompt"]

    def test_validate(self, client, car_survey_id):
        ids = question_ids(client, car_survey_id)
        resp = client.post(f"{API}/surveys/{car_survey_id}/validate", json={
            "answers": {ids["Do you own a car?"]: "No"},
        })
        body = resp.json()
        assert body["ok"] is False
        assert set(body["errors"]) == {
            ids["Are you planning to buy a car in the next year?"],
            ids["How many kilometres do you commute per day?"],
        }


# =====================================================================
# Submissions
# =====================================================================


class TestSubmissions:

    def test_invalid_is_422(self, client, car_survey_id):
        resp = client.post(f"{API}/surveys/{car_survey_id}/submissions", json={"answers": {}})
        assert resp.status_code == 422
        assert resp.json()["ok"] is False
        assert resp.json()["errors"]

    def test_submit_and_list(self, client, car_survey_id):
        ids = question_ids(client, car_survey_id)
        resp = client.post(f"{API}/surveys/{car_survey_id}/submissions", json={
            "answers": {
                ids["Do you own a car?"]: "No",
                ids["Are you planning to buy a car in the next year?"]: "Yes",
                ids["How many kilometres do you commute per day?"]: 20,
            },
            "respondent_name": "Ann",
        })
        assert resp.status_code == 201
        submission_id = resp.json()["submission_id"]

        listed = client.get(f"{API}/surveys/{car_survey_id}/submissions").json()
        assert [s["id"] for s in listed] == [submission_id]
        assert len(listed[0]["answers"]) == 3

        resp = client.post(f"{API}/submissions/{submission_id}/follow-ups")
        assert resp.json() == {"questions": []}

        resp = client.post(f"{API}/submissions/{submission_id}/personalized-answers", json={
            "answers": [{"question": "Which car?", "answer": "A small one"}],
        })
        assert resp.status_code == 201
        assert resp.json() == {"stored": 1}

    def test_unknown_submission_is_404(self, client):
        assert client.post(f"{API}/submissions/{uuid.uuid4()}/follow-ups").status_code == 404
