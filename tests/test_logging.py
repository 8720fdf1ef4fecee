import logging

from conftest import login_as, make_user
from fyht4.logging import MongoHandler, RequestContextFilter


def test_denied_requests_are_logged_with_context(client, db):
    user = make_user(db)
    login_as(client, user)
    client.get("/api/admin/proposals")

    entry = db.logs_app.find_one({"level": "WARNING", "extra": {"status": 403}})
    assert entry is not None
    assert entry["path"] == "/api/admin/proposals"
    assert entry["user_id"] == str(user["_id"])


def test_filter_outside_request():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    assert RequestContextFilter().filter(record) is True
    assert record.user_id is None and record.path is None


def test_handler_falls_back_to_file(tmp_path):
    class Broken:
        @property
        def db(self):
            raise ConnectionError("no mongo")

    path = tmp_path / "logs" / "app.log"
    handler = MongoHandler(Broken(), str(path))
    record = logging.LogRecord("worker", logging.ERROR, __file__, 1, "boom %s", ("x",), None)
    RequestContextFilter().filter(record)
    handler.emit(record)

    line = path.read_text(encoding="utf-8")
    assert "ERROR worker" in line
    assert "boom x" in line
