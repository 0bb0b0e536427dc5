import uuid

from fastapi.testclient import TestClient


def _tournament(client: TestClient, name: str = "Test Tournament", **extra):
    payload = {"name": name, "start_date": "2030-06-01T09:00:00", **extra}
    response = client.post("/api/tournaments", json=payload)
    assert response.status_code == 201
    return response.json()


def _player(client: TestClient, name: str) -> str:
    return client.post("/api/players", json={"name": name}).json()["player"]["id"]


def test_create_tournament(client: TestClient):
    """New tournaments start active with no matches"""
    data = _tournament(client, location="Main Hall", end_date="2030-06-03T18:00:00", description="9-ball")

    assert data["name"] == "Test Tournament"
    assert data["is_active"] is True
    assert data["match_count"] == 0
    assert data["location"] == "Main Hall"
    assert data["start_date"] == "2030-06-01T09:00:00"
    assert data["end_date"] == "2030-06-03T18:00:00"


def test_tournament_validation_fails_if_end_before_start(client: TestClient):
    """Test that tournament validation fails if end_date < start_date"""
    response = client.post(
        "/api/tournaments",
        json={"name": "Backwards", "start_date": "2030-06-03T00:00:00", "end_date": "2030-06-01T00:00:00"},
    )

    assert response.status_code == 400
    error_detail = response.json()["detail"]
    assert any("end_date must be >= start_date" in str(err) for err in error_detail)


def test_tournament_name_required(client: TestClient):
    response = client.post("/api/tournaments", json={"name": " ", "start_date": "2030-06-01T09:00:00"})
    assert response.status_code == 400


def test_list_tournaments_by_active_flag(client: TestClient):
    spring = _tournament(client, "Spring Open")
    _tournament(client, "Summer Open")
    client.put(f"/api/tournaments/{spring['id']}", json={"is_active": False})

    assert len(client.get("/api/tournaments").json()) == 2
    active = client.get("/api/tournaments", params={"is_active": True}).json()
    inactive = client.get("/api/tournaments", params={"is_active": False}).json()
    assert [t["name"] for t in active] == ["Summer Open"]
    assert [t["name"] for t in inactive] == ["Spring Open"]


def test_update_tournament(client: TestClient):
    tournament = _tournament(client, location="Main Hall")

    response = client.put(f"/api/tournaments/{tournament['id']}", json={"description": "Race to 9"})
    assert response.status_code == 200
    assert response.json()["description"] == "Race to 9"
    assert response.json()["location"] == "Main Hall"

    cleared = client.put(f"/api/tournaments/{tournament['id']}", json={"location": None})
    assert cleared.json()["location"] is None

    backwards = client.put(f"/api/tournaments/{tournament['id']}", json={"end_date": "2030-05-01T00:00:00"})
    assert backwards.status_code == 400

    assert client.put(f"/api/tournaments/{tournament['id']}", json={"name": None}).status_code == 400
    assert client.put(f"/api/tournaments/{uuid.uuid4()}", json={"name": "Ghost"}).status_code == 404


def test_match_count_and_location_inheritance(client: TestClient):
    tournament = _tournament(client, location="Back Room")
    alice = _player(client, "Alice")
    bob = _player(client, "Bob")

    match = client.post(
        "/api/matches",
        json={
            "scheduled_time": "2030-06-01T10:00:00",
            "player1_id": alice,
            "player2_id": bob,
            "tournament_id": tournament["id"],
        },
    ).json()

    assert match["location"] == "Back Room"
    assert match["tournament_name"] == "Test Tournament"
    count = client.get(f"/api/tournaments/{tournament['id']}/match-count")
    assert count.status_code == 200
    assert count.json() == {"match_count": 1}
    assert client.get(f"/api/tournaments/{tournament['id']}").json()["match_count"] == 1

    filtered = client.get("/api/matches", params={"tournament_id": tournament["id"]}).json()
    assert [m["id"] for m in filtered] == [match["id"]]


def test_match_count_unknown_tournament_returns_404(client: TestClient):
    assert client.get(f"/api/tournaments/{uuid.uuid4()}/match-count").status_code == 404


def test_delete_tournament_detaches_matches(client: TestClient):
    """Matches survive their tournament's deletion without a tournament link"""
    tournament = _tournament(client)
    alice = _player(client, "Alice")
    bob = _player(client, "Bob")
    match_id = client.post(
        "/api/matches",
        json={
            "scheduled_time": "2030-06-01T10:00:00",
            "player1_id": alice,
            "player2_id": bob,
            "tournament_id": tournament["id"],
        },
    ).json()["id"]

    assert client.delete(f"/api/tournaments/{tournament['id']}").status_code == 204
    assert client.get(f"/api/tournaments/{tournament['id']}").status_code == 404

    match = client.get(f"/api/matches/{match_id}").json()
    assert match["tournament_id"] is None
    assert match["tournament_name"] is None

    assert client.delete(f"/api/tournaments/{tournament['id']}").status_code == 404
