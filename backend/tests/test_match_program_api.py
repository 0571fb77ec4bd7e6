"""HTTP surface: sessions, check-ins, round commands and match results."""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from matchprogram.models.match import Match
from matchprogram.models.player import Category, Gender


@pytest.fixture
def players(add_players):
    return add_players(
        ("Anna", Gender.female, Category.double),
        ("Bente", Gender.female, Category.both),
        ("Bo", Gender.male, Category.double),
        ("Carl", Gender.male, Category.single),
        ("Dan", Gender.male, Category.double),
    )


@pytest.fixture
def started(client: TestClient, players):
    response = client.post("/api/sessions/start")
    assert response.status_code == 200
    for player in players[:-1]:
        assert client.post("/api/check-ins", json={"player_id": player.id}).status_code == 201
    response = client.post("/api/check-ins", json={"player_id": players[-1].id, "max_rounds": 1})
    assert response.status_code == 201
    return response


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_start_is_idempotent(client: TestClient):
    first = client.post("/api/sessions/start").json()
    second = client.post("/api/sessions/start").json()

    assert first["created"] is True
    assert second["created"] is False
    assert first["session"]["id"] == second["session"]["id"]

    active = client.get("/api/sessions/active").json()
    assert active["id"] == first["session"]["id"]
    assert active["selected_round"] == 1


def test_no_active_session(client: TestClient):
    assert client.get("/api/sessions/active").status_code == 404
    assert client.get("/api/match-program/rounds/1").status_code == 409
    assert client.post("/api/sessions/end").status_code == 409


def test_check_ins(client: TestClient, started, players):
    body = client.get("/api/check-ins").json()

    assert [p["name"] for p in body["players"]] == ["Anna", "Bente", "Bo", "Carl", "Dan"]
    assert body["gender_breakdown"] == {"men": 3, "women": 2, "total": 5}

    duplicate = client.post("/api/check-ins", json={"player_id": players[0].id})
    assert duplicate.status_code == 422

    assert client.delete(f"/api/check-ins/{players[3].id}").status_code == 200
    assert len(client.get("/api/check-ins").json()["players"]) == 4


def test_round_view(client: TestClient, started, players):
    body = client.get("/api/match-program/rounds/2").json()

    assert body["round"] == 2
    assert body["selected_round"] == 2
    assert len(body["courts"]) == 8
    assert [p["name"] for p in body["bench"]] == ["Anna", "Bente", "Bo", "Carl"]
    assert [p["name"] for p in body["inactive"]] == ["Dan"]

    alphabetical = client.get("/api/match-program/rounds/1", params={"sort": "alphabetical"}).json()
    assert [p["name"] for p in alphabetical["bench"]] == ["Anna", "Bente", "Bo", "Carl", "Dan"]

    assert client.get("/api/match-program/rounds/1", params={"sort": "bogus"}).status_code == 422
    assert client.get("/api/match-program/rounds/9").status_code == 422


def test_move_and_swap(client: TestClient, started, players):
    anna, bo = players[0].id, players[2].id
    client.post("/api/match-program/rounds/1/move", json={"player_id": anna, "court_idx": 1, "slot": 0})
    client.post("/api/match-program/rounds/1/move", json={"player_id": bo, "court_idx": 2, "slot": 0})

    body = client.post(
        "/api/match-program/rounds/1/move", json={"player_id": anna, "court_idx": 2, "slot": 0}
    ).json()

    assert body["swapped_with"] == bo
    courts = {c["court_idx"]: c for c in body["round"]["courts"]}
    assert [s["player"]["id"] for s in courts[1]["slots"]] == [bo]
    assert [s["player"]["id"] for s in courts[2]["slots"]] == [anna]
    assert courts[2]["team1_ids"] == [anna]


def test_move_errors(client: TestClient, started, players):
    unknown = client.post("/api/match-program/rounds/1/move", json={"player_id": "ghost", "court_idx": 1, "slot": 0})
    assert unknown.status_code == 404

    outside = client.post(
        "/api/match-program/rounds/1/move", json={"player_id": players[0].id, "court_idx": 1, "slot": 4}
    )
    assert outside.status_code == 422

    for player in players[:4]:
        client.post("/api/match-program/rounds/1/move-to-court", json={"player_id": player.id, "court_idx": 3})
    full = client.post(
        "/api/match-program/rounds/1/move-to-court", json={"player_id": players[4].id, "court_idx": 3}
    )
    assert full.status_code == 422


def test_bench_inactive_and_activation(client: TestClient, started, players):
    anna, dan = players[0].id, players[4].id
    client.post("/api/match-program/rounds/1/move", json={"player_id": anna, "court_idx": 1, "slot": 0})

    body = client.post("/api/match-program/rounds/1/inactive", json={"player_id": anna}).json()
    assert anna in [p["id"] for p in body["round"]["inactive"]]

    body = client.post("/api/match-program/rounds/1/bench", json={"player_id": anna}).json()
    assert anna in [p["id"] for p in body["round"]["bench"]]

    body = client.post("/api/match-program/rounds/2/activate-one-round", json={"player_id": dan}).json()
    assert dan in [p["id"] for p in body["round"]["bench"]]

    body = client.post("/api/match-program/rounds/2/inactive", json={"player_id": dan}).json()
    assert dan in [p["id"] for p in body["round"]["inactive"]]
    body = client.post("/api/match-program/rounds/2/available", json={"player_id": dan}).json()
    assert dan in [p["id"] for p in body["round"]["bench"]]


def test_auto_arrange_lock_capacity_reset(client: TestClient, started, players):
    body = client.post("/api/match-program/rounds/1/courts/1/capacity", json={"capacity": 5}).json()
    assert body["summary"] == {"court_idx": 1, "capacity": 5}

    body = client.post("/api/match-program/rounds/1/auto-arrange").json()
    assert body["summary"]["placed_count"] == 5
    assert body["summary"]["is_reshuffle"] is False
    courts = {c["court_idx"]: c for c in body["round"]["courts"]}
    assert courts[1]["capacity"] == 5
    assert len(courts[1]["slots"]) == 5
    assert body["round"]["bench"] == []

    body = client.post("/api/match-program/rounds/1/courts/1/lock").json()
    assert body["summary"]["locked"] is True

    body = client.post("/api/match-program/rounds/1/reset").json()
    courts = {c["court_idx"]: c for c in body["round"]["courts"]}
    assert len(courts[1]["slots"]) == 5

    body = client.post("/api/match-program/rounds/1/courts/1/lock").json()
    assert body["summary"]["locked"] is False
    body = client.post("/api/match-program/rounds/1/reset").json()
    assert all(not c["slots"] for c in body["round"]["courts"])

    bad = client.post("/api/match-program/rounds/1/courts/1/capacity", json={"capacity": 3})
    assert bad.status_code == 422


def test_duplicates_and_previous_rounds(client: TestClient, started, players):
    trio = [p.id for p in players[:3]]
    for slot, pid in enumerate(trio):
        client.post("/api/match-program/rounds/1/move", json={"player_id": pid, "court_idx": 1, "slot": slot})
        client.post("/api/match-program/rounds/2/move", json={"player_id": pid, "court_idx": 5, "slot": slot})

    body = client.get("/api/match-program/rounds/2").json()
    assert body["duplicates"]["courts_flagged"] == [5]
    court5 = next(c for c in body["courts"] if c["court_idx"] == 5)
    assert court5["duplicate"] is True
    assert court5["duplicate_player_ids"] == sorted(trio)

    previous = client.get("/api/match-program/rounds/2/previous").json()
    assert list(previous["previous"].keys()) == ["1"]
    assert [c["court_idx"] for c in previous["previous"]["1"]] == [1]


def test_end_session_and_record_result(client: TestClient, session: Session, started, players):
    for slot, player in enumerate(players[:4]):
        client.post("/api/match-program/rounds/1/move", json={"player_id": player.id, "court_idx": 2, "slot": slot})

    response = client.post("/api/sessions/end")
    assert response.status_code == 200
    assert response.json()["saved_courts_by_round"] == {"1": 1}
    assert client.get("/api/match-program/rounds/1").status_code == 409

    match = session.exec(select(Match)).one()
    result = client.post(
        f"/api/matches/{match.id}/result",
        json={"sets": [{"team1": 21, "team2": 18}, {"team1": 17, "team2": 21}, {"team1": 30, "team2": 29}]},
    )
    assert result.status_code == 200
    assert result.json()["winner_team"] == 1

    invalid = client.post(f"/api/matches/{match.id}/result", json={"sets": [{"team1": 21, "team2": 20}]})
    assert invalid.status_code == 422
    missing = client.post("/api/matches/9999/result", json={"sets": [{"team1": 21, "team2": 1}]})
    assert missing.status_code == 404


def test_move_onto_locked_court(client: TestClient, started, players):
    anna, bo = players[0].id, players[2].id
    client.post("/api/match-program/rounds/1/move", json={"player_id": anna, "court_idx": 1, "slot": 0})
    client.post("/api/match-program/rounds/1/courts/1/lock")

    locked = client.post("/api/match-program/rounds/1/move", json={"player_id": bo, "court_idx": 1, "slot": 1})
    assert locked.status_code == 422
    assert "locked" in locked.json()["detail"]

    body = client.get("/api/match-program/rounds/1").json()
    courts = {c["court_idx"]: c for c in body["courts"]}
    assert [s["player"]["id"] for s in courts[1]["slots"]] == [anna]
