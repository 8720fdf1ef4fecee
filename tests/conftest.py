import mongomock
import pytest
from bson import ObjectId
from passlib.hash import pbkdf2_sha256

from fyht4 import create_app
from fyht4.db import get_db


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "MONGODB_URI": "mongodb://localhost:27017/fyht4_test",
        "MONGODB_DB": "fyht4_test",
        "MONGO_CLIENT_CLASS": mongomock.MongoClient,
        "RESEND_API_KEY": "re_test",
        "ADMIN_ELEVATION_PASSWORD": "open-sesame",
        "SITE_URL": "https://fyht4.test",
        "LOG_FALLBACK_PATH": str(tmp_path / "app.log"),
    })
    yield app
    app.extensions["mongo"].close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    with app.app_context():
        yield get_db()


@pytest.fixture
def sent_emails(monkeypatch):
    import resend

    sent = []

    def fake_send(payload):
        sent.append(payload)
        return {"id": f"email_{len(sent)}"}

    monkeypatch.setattr(resend.Emails, "send", fake_send)
    return sent


def make_user(db, email="user@example.com", role="user", password="hunter2", name="Pat"):
    doc = {
        "_id": ObjectId(),
        "email": email,
        "name": name,
        "role": role,
        "passwordHash": pbkdf2_sha256.hash(password),
    }
    db.users.insert_one(doc)
    return doc


def login_as(client, user):
    with client.session_transaction() as sess:
        sess["uid"] = str(user["_id"])
        sess["email"] = user["email"]
        sess["role"] = user["role"]
