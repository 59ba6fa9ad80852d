from fastapi.testclient import TestClient

from votedapp import main
from votedapp.models.image_model import ImageRole
from votedapp.security import create_access_token


def seed(storage, account):
    storage.save_image(ImageRole.voter, account.address, "QmVoter", "https://gateway.test/ipfs/QmVoter")
    storage.save_image(ImageRole.voter, account.address, "QmVoter2", "https://gateway.test/ipfs/QmVoter2")
    storage.save_image(
        ImageRole.candidate, account.address, "QmCandidate", "https://gateway.test/ipfs/QmCandidate"
    )


def bearer(account):
    return {"Authorization": f"Bearer {create_access_token(account.address)}"}


def test_database_stats(client, storage, account):
    seed(storage, account)

    response = client.get("/api/admin/database-stats", headers=bearer(account))

    assert response.status_code == 200
    assert response.json() == {"success": True, "stats": {"voters": 2, "candidates": 1}}


def test_reset_database_clears_every_record(client, storage, account):
    seed(storage, account)

    response = client.post("/api/admin/reset-database", headers=bearer(account))

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Database reset successful",
        "deleted": {"voters": 2, "candidates": 1},
    }
    stats = client.get("/api/admin/database-stats", headers=bearer(account)).json()["stats"]
    assert stats == {"voters": 0, "candidates": 0}
    assert client.get(f"/api/getVoterImage/{account.address}").status_code == 404
    assert client.get(f"/api/getCandidateImage/{account.address}").status_code == 404


def test_reset_of_empty_database(client, account):
    response = client.post("/api/admin/reset-database", headers=bearer(account))
    assert response.json()["deleted"] == {"voters": 0, "candidates": 0}


def test_admin_routes_require_token(client):
    assert client.get("/api/admin/database-stats").status_code == 401
    assert client.post("/api/admin/reset-database").status_code == 401


def test_root_and_health(client):
    assert client.get("/").json() == {"message": "Welcome to the Voting DApp API"}
    assert client.get("/health").json() == {"status": "healthy", "database": "MongoDB"}


def test_shutdown_closes_database(monkeypatch):
    closed = []
    monkeypatch.setattr(main, "close_database", lambda: closed.append(True))

    with TestClient(main.app) as client:
        assert client.get("/health").status_code == 200
        assert closed == []

    assert closed == [True]
