from conftest import login_as, make_user


def test_elevate_requires_login(client):
    assert client.post("/api/admin/elevate", json={"password": "open-sesame"}).status_code == 401


def test_elevate_missing_password(client, db):
    login_as(client, make_user(db))
    resp = client.post("/api/admin/elevate", json={})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Password is required"


def test_elevate_wrong_password_is_audited(client, db):
    user = make_user(db)
    login_as(client, user)

    resp = client.post("/api/admin/elevate", json={"password": "nope"},
                       headers={"X-Forwarded-For": "203.0.113.7"})
    assert resp.status_code == 403
    assert db.users.find_one({"_id": user["_id"]})["role"] == "user"

    entry = db.audit_logs.find_one({"action": "admin.elevate"})
    assert entry["status"] == "failure"
    assert entry["ipAddress"] == "203.0.113.7"


def test_elevate_not_configured(app, client, db):
    app.config["ADMIN_ELEVATION_PASSWORD"] = None
    login_as(client, make_user(db))
    assert client.post("/api/admin/elevate", json={"password": "x"}).status_code == 500


def test_elevate_grants_admin_and_opens_gate(client, db):
    user = make_user(db)
    login_as(client, user)
    assert client.get("/api/admin/proposals").status_code == 403

    resp = client.post("/api/admin/elevate", json={"password": "open-sesame"})
    assert resp.status_code == 200
    assert resp.get_json() == {
        "success": True,
        "message": "Admin role granted successfully",
        "role": "admin",
        "forceSessionRefresh": True,
    }
    assert db.users.find_one({"_id": user["_id"]})["role"] == "admin"
    assert db.audit_logs.find_one({"action": "admin.elevate", "status": "success"})

    assert client.get("/api/admin/proposals").status_code == 200


def test_elevate_unknown_user(client, db):
    ghost = {"_id": "507f1f77bcf86cd799439011", "email": "ghost@example.com", "role": "user"}
    login_as(client, ghost)
    assert client.post("/api/admin/elevate", json={"password": "open-sesame"}).status_code == 404


def test_refresh_session(client, db):
    admin = make_user(db, email="admin@example.com", role="admin")
    login_as(client, admin)
    resp = client.post("/api/admin/refresh-session")
    assert resp.status_code == 200
    assert resp.get_json()["role"] == "admin"


def test_refresh_session_demoted_in_db(client, db):
    admin = make_user(db, email="admin@example.com", role="admin")
    login_as(client, admin)
    db.users.update_one({"_id": admin["_id"]}, {"$set": {"role": "user"}})
    assert client.post("/api/admin/refresh-session").status_code == 403


def test_elevate_non_object_body(client, db):
    login_as(client, make_user(db))
    for body in (["open-sesame"], "open-sesame"):
        resp = client.post("/api/admin/elevate", json=body)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Password is required"
