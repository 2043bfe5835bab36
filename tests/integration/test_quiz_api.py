from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime

import pytest
from httpx import ASGITransport, AsyncClient

from principia.api.deps import get_content_repo, get_content_service, get_learners_repo, get_learning_repo, get_progress_repo, get_quiz_repo
from principia.config import get_settings
from principia.main import app
from tests.fakes import FakeContentService, make_topic

LEARNER = {"X-Learner-Id": "learner-1"}


@pytest.fixture
def content_service() -> FakeContentService:
  return FakeContentService()


@pytest.fixture
async def client(settings, content_service, content_repo, learning_repo, learners_repo, quiz_repo, progress_repo):
  topic = make_topic(principle_count=3)
  content_repo.topics[topic.slug] = topic
  app.dependency_overrides[get_settings] = lambda: settings
  app.dependency_overrides[get_content_service] = lambda: content_service
  app.dependency_overrides[get_content_repo] = lambda: content_repo
  app.dependency_overrides[get_learning_repo] = lambda: learning_repo
  app.dependency_overrides[get_learners_repo] = lambda: learners_repo
  app.dependency_overrides[get_quiz_repo] = lambda: quiz_repo
  app.dependency_overrides[get_progress_repo] = lambda: progress_repo
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as async_client:
    yield async_client
  app.dependency_overrides.clear()


@pytest.mark.anyio
@pytest.mark.parametrize(("method", "path"), [("POST", "/v1/topics/quantum-computing/quiz"), ("GET", "/v1/quizzes/abc"), ("POST", "/v1/quizzes/abc/answer"), ("POST", "/v1/quizzes/abc/complete"), ("GET", "/v1/progress"), ("GET", "/v1/progress/topic-1"), ("POST", "/v1/progress/topic-1")])
async def test_quiz_routes_require_identity(client, method: str, path: str) -> None:
  response = await client.request(method, path, json={"question_id": "q", "answer": 0, "principles_completed": 1})
  assert response.status_code == 401


@pytest.mark.anyio
async def test_quiz_flow_updates_mastery_and_progress(client) -> None:
  created = await client.post("/v1/topics/quantum-computing/quiz", headers=LEARNER)
  assert created.status_code == 201
  quiz = created.json()
  assert quiz["total_questions"] == 3
  assert all(item["correct_answer"] is None and item["explanation"] is None for item in quiz["questions"])

  for question in quiz["questions"]:
    answered = await client.post(f"/v1/quizzes/{quiz['id']}/answer", json={"question_id": question["id"], "answer": question["order_index"]}, headers=LEARNER)
    assert answered.status_code == 200
    assert answered.json()["is_correct"] is True
    assert answered.json()["mastery"]["mastery_score"] == 100

  repeat = await client.post(f"/v1/quizzes/{quiz['id']}/answer", json={"question_id": quiz["questions"][0]["id"], "answer": 1}, headers=LEARNER)
  assert repeat.status_code == 409

  completed = await client.post(f"/v1/quizzes/{quiz['id']}/complete", headers=LEARNER)
  assert completed.status_code == 200
  body = completed.json()
  assert (body["score"], body["correct_count"], body["passed"]) == (100, 3, True)
  assert body["progress"]["principles_completed"] == 3
  assert body["progress"]["completed_at"] is not None

  again = await client.post(f"/v1/quizzes/{quiz['id']}/complete", headers=LEARNER)
  assert again.status_code == 409

  progress = (await client.get("/v1/progress", headers=LEARNER)).json()
  assert [(item["topic_id"], item["quizzes_taken"], item["best_score"]) for item in progress] == [("topic-1", 1, 100)]


@pytest.mark.anyio
async def test_answer_key_is_revealed_once_the_quiz_is_completed(client) -> None:
  quiz = (await client.post("/v1/topics/quantum-computing/quiz", headers=LEARNER)).json()
  first = quiz["questions"][0]
  await client.post(f"/v1/quizzes/{quiz['id']}/answer", json={"question_id": first["id"], "answer": 3}, headers=LEARNER)

  partial = (await client.get(f"/v1/quizzes/{quiz['id']}", headers=LEARNER)).json()
  assert partial["questions"][0]["correct_answer"] == 0
  assert partial["questions"][0]["user_answer"] == 3
  assert partial["questions"][1]["correct_answer"] is None

  await client.post(f"/v1/quizzes/{quiz['id']}/complete", headers=LEARNER)
  final = (await client.get(f"/v1/quizzes/{quiz['id']}", headers=LEARNER)).json()
  assert final["score"] == 0
  assert [item["correct_answer"] for item in final["questions"]] == [0, 1, 2]


@pytest.mark.anyio
async def test_other_learners_cannot_read_a_quiz(client) -> None:
  quiz = (await client.post("/v1/topics/quantum-computing/quiz", headers=LEARNER)).json()
  response = await client.get(f"/v1/quizzes/{quiz['id']}", headers={"X-Learner-Id": "learner-2"})
  assert response.status_code == 404


@pytest.mark.anyio
@pytest.mark.parametrize("answer", [-1, "1", 1.5])
async def test_answer_must_be_a_non_negative_integer(client, answer) -> None:
  response = await client.post("/v1/quizzes/any/answer", json={"question_id": "q", "answer": answer}, headers=LEARNER)
  assert response.status_code == 422


@pytest.mark.anyio
async def test_quiz_generation_failure_is_502(client, content_service) -> None:
  content_service.quiz_error = RuntimeError("model unavailable")
  response = await client.post("/v1/topics/quantum-computing/quiz", headers=LEARNER)
  assert response.status_code == 502


@pytest.mark.anyio
async def test_reading_progress_round_trip(client) -> None:
  missing = await client.get("/v1/progress/topic-1", headers=LEARNER)
  assert missing.status_code == 404

  recorded = await client.post("/v1/progress/topic-1", json={"principles_completed": 2}, headers=LEARNER)
  assert recorded.status_code == 200
  assert recorded.json()["principles_completed"] == 2
  assert recorded.json()["total_principles"] == 3

  fetched = (await client.get("/v1/progress/topic-1", headers=LEARNER)).json()
  assert fetched["principles_completed"] == 2
  assert fetched["quizzes_taken"] == 0


@pytest.mark.anyio
async def test_list_topics_shows_public_topics_newest_first(client, content_repo) -> None:
  older = replace(make_topic("graph-theory", topic_id="topic-2"), created_at=datetime(2026, 1, 1, tzinfo=UTC))
  newer = replace(make_topic("game-theory", topic_id="topic-3"), created_at=datetime(2026, 2, 1, tzinfo=UTC))
  hidden = replace(make_topic("private-notes", topic_id="topic-4"), is_public=False)
  for record in (older, newer, hidden):
    content_repo.topics[record.slug] = record

  response = await client.get("/v1/topics", params={"limit": 2})

  assert response.status_code == 200
  assert [item["slug"] for item in response.json()] == ["game-theory", "graph-theory"]
  assert "principles" not in response.json()[0]


@pytest.mark.anyio
async def test_list_topics_rejects_oversized_pages(client) -> None:
  response = await client.get("/v1/topics", params={"limit": 101})
  assert response.status_code == 422
