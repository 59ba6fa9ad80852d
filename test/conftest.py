import httpx
import mongomock
import pytest
from eth_account import Account
from fastapi.testclient import TestClient

from votedapp.dependencies import get_image_storage, get_pinata_factory
from votedapp.main import app
from votedapp.pinata import PinataClient
from votedapp.routes import image_routes
from votedapp.security import create_access_token
from votedapp.storage_mongo import ImageStorage


@pytest.fixture
def db():
    return mongomock.MongoClient()["voting_dapp_test"]


@pytest.fixture
def storage(db):
    return ImageStorage(db)


@pytest.fixture
def account():
    return Account.create()


@pytest.fixture
def other_account():
    return Account.create()


@pytest.fixture
def auth_headers(account):
    return {"x-access-token": create_access_token(account.address)}


class FakePinata:
    """Records pin requests and answers like pinFileToIPFS."""

    def __init__(self):
        self.fail = False
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            return httpx.Response(500, json={"error": "pinning unavailable"})
        return httpx.Response(200, json={"IpfsHash": f"QmHash{len(self.requests)}"})

    def factory(self) -> PinataClient:
        return PinataClient(
            api_key="key",
            secret_api_key="secret",
            api_url="https://pinata.test",
            gateway_url="https://gateway.test/ipfs",
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def pinata():
    return FakePinata()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(image_routes, "UPLOAD_DIR", path)
    return path


@pytest.fixture
def client(storage, pinata, upload_dir):
    app.dependency_overrides[get_image_storage] = lambda: storage
    app.dependency_overrides[get_pinata_factory] = lambda: pinata.factory
    yield TestClient(app)
    app.dependency_overrides.clear()

