import threading

from ballotbox.extensions import db
from ballotbox.models import Ballot, Voter

BALLOT = {"R1": "X", "R2": "Z"}


def test_index_serves_the_voting_page(client):
    response = client.get("/")

    assert response.status_code == 200
    assert b"Code \xc3\xa9lecteur" in response.data


def test_schema_lists_positions_and_candidates(client):
    response = client.get("/api/schema")

    assert response.status_code == 200
    data = response.get_json()
    assert [p["id"] for p in data["positions"]] == ["R1", "R2"]
    assert data["positions"][0]["title"] == "Directeur"
    assert {c["id"]: c["raceId"] for c in data["candidates"]} == {
        "X": "R1",
        "Y": "R1",
        "Z": "R2",
        "W": "R2",
    }
    assert client.get("/api/candidates").get_json() == data


def test_auth_accepts_a_registered_code(client, voters):
    response = client.post("/api/auth", json={"identity": "voter-001"})

    assert response.status_code == 200
    assert response.get_json() == {"ok": True}


def test_auth_unknown_code_is_rejected_without_side_effects(client, voters):
    response = client.post("/api/auth", json={"identity": "VOTER-404"})

    assert response.status_code == 400
    assert response.get_json() == {"message": "Code électeur introuvable."}
    assert Voter.query.filter_by(used=True).count() == 0


def test_auth_accepts_legacy_voter_id_field(client, voters):
    response = client.post("/api/auth", json={"voterId": "VOTER-002"})

    assert response.status_code == 200


def test_auth_rejects_malformed_bodies(client):
    assert client.post("/api/auth", data="nope").status_code == 400
    assert client.post("/api/auth", json=["VOTER-001"]).status_code == 400
    assert client.post("/api/auth", json={}).status_code == 400


def test_vote_records_a_ballot_once(client, voters):
    response = client.post(
        "/api/vote",
        json={"identity": "VOTER-001", "selections": BALLOT, "note": "Bon courage"},
        headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
    )

    assert response.status_code == 200
    data = response.get_json()
    assert data["ok"] is True
    ballot = Ballot.query.one()
    assert data["ballotId"] == ballot.id
    assert ballot.ip == "203.0.113.9"
    assert ballot.note == "Bon courage"
    assert "notifyUrl" not in data

    again = client.post("/api/vote", json={"identity": "VOTER-001", "selections": BALLOT})
    assert again.status_code == 400
    assert again.get_json() == {"message": "Ce code a déjà voté."}
    assert Ballot.query.count() == 1

    auth = client.post("/api/auth", json={"identity": "VOTER-001"})
    assert auth.status_code == 400


def test_vote_with_foreign_candidate_records_nothing(client, voters):
    response = client.post(
        "/api/vote",
        json={"identity": "VOTER-001", "selections": {"R1": "Z", "R2": "Z"}},
    )

    assert response.status_code == 400
    assert response.get_json() == {"message": "Candidat invalide pour R1"}
    assert Ballot.query.count() == 0
    assert Voter.query.filter_by(code="VOTER-001").one().used is False


def test_vote_with_missing_race_names_it(client, voters):
    response = client.post("/api/vote", json={"identity": "VOTER-001", "selections": {"R1": "X"}})

    assert response.status_code == 400
    assert "Chef des travaux" in response.get_json()["message"]


def test_vote_requires_identity_and_selections(client, voters):
    assert client.post("/api/vote", json={"selections": BALLOT}).status_code == 400
    assert client.post("/api/vote", json={"identity": "VOTER-001"}).status_code == 400
    assert Ballot.query.count() == 0


def test_status_reports_no_close_time_by_default(client):
    response = client.get("/api/status")

    assert response.get_json() == {
        "closeAt": None,
        "CLOSE_AT": None,
        "closed": False,
        "mode": "code",
    }


def test_vote_after_close_time_is_locked(client, voters, admin_key):
    response = client.post(
        f"/admin/close-at?key={admin_key}",
        json={"isoDate": "2000-01-01T00:00:00Z"},
    )
    assert response.status_code == 200

    response = client.post("/api/vote", json={"identity": "VOTER-001", "selections": BALLOT})

    assert response.status_code == 423
    assert response.get_json() == {"message": "Vote clôturé."}
    assert Ballot.query.count() == 0
    assert client.get("/api/status").get_json()["closed"] is True


def test_unknown_api_path_returns_json_404(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert "message" in response.get_json()


def test_phone_vote_returns_whatsapp_link(phone_client):
    page = phone_client.get("/")
    assert "Téléphone (WhatsApp)" in page.get_data(as_text=True)

    response = phone_client.post(
        "/api/vote",
        json={"identity": "+243 97 123 4567", "name": "Esron T.", "selections": BALLOT},
    )

    assert response.status_code == 200
    data = response.get_json()
    assert data["notifyUrl"].startswith("https://wa.me/243834757010?text=")
    assert data["ballotId"] in data["notifyUrl"]

    again = phone_client.post("/api/auth", json={"phone": "+243971234567"})
    assert again.status_code == 400
    assert again.get_json() == {"message": "Ce numéro WhatsApp a déjà voté."}


def test_phone_vote_requires_a_name(phone_client):
    response = phone_client.post(
        "/api/vote",
        json={"identity": "+243971234567", "selections": BALLOT},
    )

    assert response.status_code == 400
    assert Ballot.query.count() == 0


def test_concurrent_votes_for_one_code_record_a_single_ballot(app, voters):
    workers = 8
    barrier = threading.Barrier(workers)
    statuses = []

    def vote():
        client = app.test_client()
        barrier.wait()
        response = client.post("/api/vote", json={"identity": "VOTER-001", "selections": BALLOT})
        statuses.append(response.status_code)

    threads = [threading.Thread(target=vote) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(statuses) == [200] + [400] * (workers - 1)
    assert Ballot.query.count() == 1
    assert Ballot.query.one().voter_ref == "VOTER-001"


def test_vote_answers_503_when_the_store_is_gone(client, voters):
    db.drop_all()

    response = client.post("/api/vote", json={"identity": "VOTER-001", "selections": BALLOT})

    assert response.status_code == 503
    assert response.get_json() == {"message": "Stockage indisponible. Réessayez plus tard."}
