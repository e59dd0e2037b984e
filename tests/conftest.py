import pytest
from eth_account import Account
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import database
from handlers.auth_handlers import build_update_message, sign_message, verify_signature
from handlers.nft_handlers import get_chain_reader
from main import app
from models import AvatarRecord


class FakeChainReader:
    """Stands in for the node: real EOA signature checks, ownership from a dict."""

    def __init__(self):
        self.owners = {}
        self.owner_error = None
        self.calls = []

    def verify_message(self, address, message, signature):
        self.calls.append(("verify_message", address))
        return verify_signature(signature, address, message)

    def owner_of(self, token_id):
        self.calls.append(("owner_of", token_id))
        if self.owner_error is not None:
            raise self.owner_error
        return self.owners.get(token_id)


@pytest.fixture
def db_url(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    database.dispose_db()
    yield "sqlite://"
    database.dispose_db()


@pytest.fixture
def session(db_url):
    db = Session(bind=database.connect_db())
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def chain():
    return FakeChainReader()


@pytest.fixture
def client(db_url, chain):
    app.dependency_overrides[get_chain_reader] = lambda: chain
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def owner():
    return Account.create()


@pytest.fixture
def make_update():
    def _make_update(account, token_id, image_url, address=None):
        message = build_update_message(account.address, token_id, image_url)
        return {
            "address": address or account.address,
            "tokenId": str(token_id),
            "imageUrl": image_url,
            "message": message,
            "signature": sign_message(message, account.key),
        }

    return _make_update


@pytest.fixture
def count_records(db_url):
    def _count_records(**filters):
        with Session(bind=database.connect_db()) as db:
            return db.query(AvatarRecord).filter_by(**filters).count()

    return _count_records
