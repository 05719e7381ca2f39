from fastapi.testclient import TestClient

from momentum_backend.main import app

client = TestClient(app)


def setup_squad():
    client.put("/v1/profile", json={"name": "Ana", "selected_identities": ["The Athlete"]})
    return client.post("/v1/squads", json={"name": "Runners", "goal_identity": "The Athlete"}).json()


def test_create_squad_sets_membership_and_quests():
    squad = setup_squad()
    assert squad["members"] == ["Ana"]
    assert len(squad["dailyQuests"]["quests"]) == 3
    assert client.get("/v1/profile").json()["squadId"] == squad["id"]


def test_join_vote_flow():
    squad = setup_squad()
    client.post(f"/v1/squads/{squad['id']}/requests", json={"user_name": "Ben", "message": "hi"})
    body = client.post(
        f"/v1/squads/{squad['id']}/requests/Ben/vote", json={"voter": "Ana", "vote": "approve"}
    ).json()
    assert body["squad"]["members"] == ["Ana", "Ben"]
    assert body["emitted"][0]["type"] == "squad.member_joined"


def test_invalid_vote_value_rejected():
    squad = setup_squad()
    resp = client.post(f"/v1/squads/{squad['id']}/requests/Ben/vote", json={"voter": "Ana", "vote": "maybe"})
    assert resp.status_code == 422


def test_quest_first_claim_wins():
    squad = setup_squad()
    quest = squad["dailyQuests"]["quests"][0]
    url = f"/v1/squads/{squad['id']}/quests/{quest['id']}/complete"

    first = client.post(url, json={"claimant": "Ana"}).json()
    second = client.post(url, json={"claimant": "Ben"}).json()

    assert first["squad"]["sharedMomentum"] == quest["points"]
    assert second["emitted"] == []
    assert second["squad"]["dailyQuests"]["quests"][0]["completedBy"] == "Ana"


def test_completion_feeds_ripples():
    setup_squad()
    habit = client.post("/v1/habits", json={"title": "Run"}).json()
    client.post(f"/v1/habits/{habit['id']}/complete")
    ripples = client.get("/v1/ripples").json()["ripples"]
    assert len(ripples) == 1
    assert ripples[0]["habitTitle"] == "Run"


def test_suggestions_exclude_members():
    setup_squad()
    assert client.get("/v1/squads/suggestions").json()["squads"] == []


def test_unknown_squad_404():
    assert client.get("/v1/squads/nope").status_code == 404
