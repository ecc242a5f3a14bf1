"""Tests for the HTTP surface: story init, turns, dilemmas, state, transcript."""

from functools import partial

import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.routes.game import reset_orchestrators, stories
from taleloop.core.orchestrator import Orchestrator

SEED = {
    "title": "The Lighthouse",
    "startingRoom": {"name": "Keeper's Cottage", "description": "A cramped cottage smelling of salt."},
    "initialObjects": [{"name": "brass lantern", "synonyms": ["lamp"]}],
}

WORLD = {
    "rooms": [
        {"key": "gate", "name": "Gate", "x": 0, "y": 0, "description": "Rusted iron bars."},
        {"key": "yard", "name": "Yard", "x": 0, "y": 1, "description": "Weeds everywhere."},
    ],
    "startingRoom": "gate",
    "connections": [{"fromRoom": "gate", "toRoom": "yard", "direction": "north"}],
    "dilemmas": [{
        "room": "yard",
        "description": "A wounded crow flaps in the weeds.",
        "optionA": {"description": "Tend to it", "outcomeNarrative": "The crow calms in your hands."},
        "optionB": {"description": "Walk on"},
        "primaryDimension": "A",
    }],
}


@pytest.fixture
def client(fresh_db, generator, monkeypatch):
    """TestClient whose orchestrators use the mock generator."""
    monkeypatch.setattr(stories, "Orchestrator", partial(Orchestrator, generator=generator))
    reset_orchestrators()
    with TestClient(app) as test_client:
        yield test_client
    reset_orchestrators()


def _init(client, story_id=1, **body):
    return client.post(f"/api/game/stories/{story_id}/init", json=body)


class TestHealth:
    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "ok", "version": "0.1.0"}


class TestInit:
    def test_seed(self, client):
        response = _init(client, seed=SEED)
        assert response.status_code == 200
        body = response.json()
        assert body["storyId"] == 1
        assert body["openingNarrative"].startswith("== KEEPER'S COTTAGE ==")
        assert "You can see: brass lantern" in body["openingNarrative"]

    def test_world(self, client):
        body = _init(client, world=WORLD).json()
        assert set(body["roomIds"]) == {"gate", "yard"}
        assert body["startingRoomId"] == body["roomIds"]["gate"]

    def test_empty_body_rejected(self, client):
        assert _init(client).status_code == 400

    def test_world_without_start_rejected(self, client):
        world = {"rooms": [{"key": "a", "name": "A", "x": 0, "y": 0}]}
        assert _init(client, world=world).status_code == 400

    def test_broken_world_rejected(self, client):
        world = {"rooms": [{"key": "a", "name": "A", "x": 0, "y": 0}],
                 "connections": [{"fromRoom": "a", "toRoom": "b", "direction": "east"}]}
        response = _init(client, world=world)
        assert response.status_code == 400
        assert "Unknown room key 'b'" in response.json()["detail"]


class TestTurns:
    def test_turn_round_trip(self, client):
        _init(client, seed=SEED)
        response = client.post("/api/game/stories/1/turn", json={"input": "take lamp"})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["narrative"] == "You take the brass lantern."
        assert body["roomChanged"] is False
        assert body["turnCount"] == 0

    def test_blank_input(self, client):
        _init(client, seed=SEED)
        assert client.post("/api/game/stories/1/turn", json={"input": "   "}).status_code == 400

    def test_uninitialized_story(self, client):
        assert client.post("/api/game/stories/9/turn", json={"input": "look"}).status_code == 404

    def test_dilemma_flow(self, client):
        _init(client, world=WORLD)
        body = client.post("/api/game/stories/1/turn", json={"input": "north"}).json()
        dilemma = body["dilemmaTriggered"]
        assert dilemma["options"] == {"A": "Tend to it", "B": "Walk on"}

        url = f"/api/game/stories/1/dilemmas/{dilemma['id']}"
        answer = client.post(url, json={"option": "a"})
        assert answer.json() == {"outcomeNarrative": "The crow calms in your hands."}

        again = client.post(url, json={"option": "b"})
        assert again.json() == {"outcomeNarrative": "That choice has already been made."}

    def test_dilemma_bad_option(self, client):
        _init(client, world=WORLD)
        dilemma = client.post("/api/game/stories/1/turn", json={"input": "north"}).json()["dilemmaTriggered"]
        response = client.post(f"/api/game/stories/1/dilemmas/{dilemma['id']}", json={"option": "C"})
        assert response.status_code == 400


class TestQueries:
    def test_state(self, client):
        _init(client, seed=SEED)
        client.post("/api/game/stories/1/turn", json={"input": "take lamp"})
        state = client.get("/api/game/stories/1/state").json()
        assert state["roomName"] == "Keeper's Cottage"
        assert state["inventory"] == ["brass lantern"]
        assert state["personality"]["openness"] == {"score": 50.0, "confidence": 0}
        assert state["inVehicle"] is None

    def test_state_unknown_story(self, client):
        assert client.get("/api/game/stories/5/state").status_code == 404

    def test_transcript_limit(self, client):
        _init(client, seed=SEED)
        client.post("/api/game/stories/1/turn", json={"input": "take lamp"})
        full = client.get("/api/game/stories/1/transcript").json()
        assert [e["speaker"] for e in full["entries"]] == ["narrator", "player", "narrator"]

        last = client.get("/api/game/stories/1/transcript", params={"limit": 1}).json()
        assert [e["content"] for e in last["entries"]] == ["You take the brass lantern."]
