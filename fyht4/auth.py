# fyht4/auth.py
from flask import Blueprint, request, redirect, session, current_app, jsonify
from passlib.hash import pbkdf2_sha256 as hasher

from .db import get_db
from .utils.json_body import json_body
from .utils.mongo_safe import safe_object_id

bp = Blueprint("auth", __name__)


def _json_or_form():
    if request.is_json:
        return json_body()
    return request.form


@bp.get("/auth/login")
def login_get():
    # Sin páginas: el front decide cómo pedir credenciales
    return jsonify({"error": "Authentication required", "next": request.args.get("next")}), 401


@bp.post("/auth/login")
def login_post():
    data = _json_or_form()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = get_db().users.find_one({"email": email})

    if (not user or user.get("disabled") or not user.get("passwordHash")
            or not hasher.verify(password, user["passwordHash"])):
        current_app.logger.warning("Login fallido para '%s'", email, extra={"extra_dict": {"reason": "invalid_credentials"}})
        return jsonify({"error": "Invalid email or password"}), 401

    # Sesión muy simple
    session["uid"] = str(user["_id"])
    session["email"] = user["email"]
    session["role"] = user.get("role") or "user"

    current_app.logger.info("Login OK de '%s' (uid=%s, role=%s)", email, session["uid"], session["role"])

    next_url = request.args.get("next") or data.get("next")
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return redirect(next_url)
    return jsonify({"ok": True, "userId": session["uid"], "role": session["role"]})


@bp.get("/auth/logout")
def logout():
    uid, email = session.get("uid"), session.get("email")
    session.clear()
    current_app.logger.info("Logout de uid=%s email=%s", uid, email)
    return jsonify({"ok": True})


@bp.get("/api/auth/role")
def role():
    uid = session.get("uid")
    if not uid:
        return jsonify({"error": "Authentication required"}), 401

    user = get_db().users.find_one({"_id": safe_object_id(uid)}, {"role": 1, "email": 1})
    db_role = (user or {}).get("role") or "user"
    session_role = session.get("role") or "user"

    return jsonify({
        "userId": uid,
        "email": (user or {}).get("email"),
        "roleFromDatabase": db_role,
        "roleFromSession": session_role,
        "rolesMatch": db_role == session_role,
        "sessionUser": {"id": uid, "email": session.get("email"), "role": session_role},
    })
