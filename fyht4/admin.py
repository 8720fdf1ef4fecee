# fyht4/admin.py
import hmac
from datetime import datetime, timezone

from flask import Blueprint, request, session, jsonify, current_app
from pymongo import DESCENDING, ReturnDocument

from .audit import log_audit, get_recent_audit_logs, get_user_audit_logs
from .db import get_db
from .mailer import send_email_safe, approval_email_html, rejection_email_html
from .serializers import serialize_doc, serialize_docs
from .utils.json_body import json_body
from .utils.mongo_safe import safe_object_id

bp = Blueprint("admin", __name__)

PENDING = {"status": "pending"}


def _to_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _proposal_item(p):
    # Forma estable para el cliente; el serializer convierte ids y fechas
    return serialize_doc({
        "_id": p["_id"],
        "title": p.get("title"),
        "category": p.get("category") or "",
        "zipcode": str(p.get("zipcode") or ""),
        "shortDescription": p.get("shortDescription") or "",
        "description": p.get("description") or "",
        "fundingGoal": p.get("fundingGoal") or 0,
        "voteGoal": p.get("voteGoal") or 0,
        "createdAt": p.get("createdAt"),
        "createdBy": p.get("createdBy"),
        "status": p.get("status"),
        "adminNotes": p.get("adminNotes") or "",
    })


def _dollars(cents) -> str:
    return f"{(cents or 0) / 100:,.2f}".rstrip("0").rstrip(".")


@bp.get("/admin")
def admin_home():
    db = get_db()
    return jsonify({
        "pendingProposals": db.project_proposals.count_documents(PENDING),
        "recentAudit": serialize_docs(get_recent_audit_logs(limit=20)),
    })


@bp.get("/api/admin/proposals")
def proposals_list():
    limit = max(1, min(_to_int(request.args.get("limit"), 50), 100))
    skip = max(_to_int(request.args.get("skip"), 0), 0)

    col = get_db().project_proposals
    docs = col.find(PENDING).sort("createdAt", DESCENDING).skip(skip).limit(limit)
    items = [_proposal_item(p) for p in docs]
    total = col.count_documents(PENDING)

    return jsonify({"items": items, "total": total, "skip": skip, "limit": limit})


@bp.patch("/api/admin/proposals/<proposal_id>")
def proposal_decide(proposal_id):
    db = get_db()
    oid = safe_object_id(proposal_id)
    prop = db.project_proposals.find_one({"_id": oid}) if oid else None
    if not prop:
        return jsonify({"error": "Not found"}), 404

    body = json_body()
    action = body.get("action")
    notes = body.get("adminNotes") or ""

    if action not in ("approve", "reject"):
        return jsonify({"error": "Unknown action"}), 400

    submitter = None
    created_by = safe_object_id(str(prop["createdBy"])) if prop.get("createdBy") else None
    if created_by:
        submitter = db.users.find_one({"_id": created_by}, {"email": 1, "name": 1})
    to = (submitter or {}).get("email")
    name = (submitter or {}).get("name")

    if action == "reject":
        db.project_proposals.update_one(
            {"_id": prop["_id"]},
            {"$set": {"status": "rejected", "adminNotes": notes, "updatedAt": datetime.now(timezone.utc)}},
        )
        send_email_safe(
            to,
            f"FYHT4 – Proposal not approved: {prop.get('title')}",
            rejection_email_html(name, prop.get("title"), notes),
        )
        log_audit(session["uid"], session.get("email"), "admin.project.update", "proposal",
                  resource_id=str(prop["_id"]), changes={"status": "rejected"}, req=request)
        current_app.logger.info("Propuesta rechazada id=%s", prop["_id"])
        return jsonify({"ok": True})

    now = datetime.now(timezone.utc)
    project = {
        "title": prop.get("title"),
        "category": prop.get("category"),
        "zipcode": str(prop.get("zipcode") or ""),
        "shortDescription": prop.get("shortDescription") or "",
        "description": prop.get("description") or "",
        "fundingGoal": prop.get("fundingGoal") or 0,
        "totalRaised": 0,
        "voteGoal": prop.get("voteGoal") or 0,
        "votesYes": 0,
        "votesNo": 0,
        "status": "voting",
        "createdBy": prop.get("createdBy"),
        "createdAt": now,
        "approvedAt": now,
        "votingOpenedAt": now,
        "coverImage": None,
        "adminVerifiedComplete": False,
    }
    project_id = db.projects.insert_one(project).inserted_id

    db.project_proposals.update_one(
        {"_id": prop["_id"]},
        {"$set": {"status": "approved", "adminNotes": notes, "projectId": project_id, "updatedAt": now}},
    )

    site = (current_app.config.get("SITE_URL") or request.host_url).rstrip("/")
    send_email_safe(
        to,
        f"FYHT4 – Your project is live: {prop.get('title')}",
        approval_email_html(name, prop.get("title"), project["zipcode"], project["voteGoal"],
                            _dollars(project["fundingGoal"]), f"{site}/projects/{project_id}"),
    )
    log_audit(session["uid"], session.get("email"), "admin.project.update", "proposal",
              resource_id=str(prop["_id"]), changes={"status": "approved", "projectId": str(project_id)},
              req=request)
    current_app.logger.info("Propuesta aprobada id=%s project_id=%s", prop["_id"], project_id)

    return jsonify({"ok": True, "projectId": str(project_id)})


@bp.post("/api/admin/elevate")
def elevate():
    # El gate solo exige sesión; aquí se valida la contraseña compartida
    uid = session.get("uid")
    if not uid:
        return jsonify({"error": "Authentication required"}), 401

    password = json_body().get("password")
    if not password:
        return jsonify({"error": "Password is required"}), 400

    admin_password = current_app.config.get("ADMIN_ELEVATION_PASSWORD")
    if not admin_password:
        current_app.logger.error("ADMIN_ELEVATION_PASSWORD no configurada")
        return jsonify({"error": "Admin elevation not configured. Contact system administrator."}), 500

    if not hmac.compare_digest(str(password).encode(), admin_password.encode()):
        log_audit(uid, session.get("email"), "admin.elevate", "user", resource_id=uid,
                  req=request, status="failure", error_message="invalid password")
        current_app.logger.warning("Elevación fallida uid=%s", uid)
        return jsonify({"error": "Invalid admin password"}), 403

    oid = safe_object_id(uid)
    user = get_db().users.find_one_and_update(
        {"_id": oid}, {"$set": {"role": "admin"}}, return_document=ReturnDocument.AFTER
    ) if oid else None
    if not user:
        return jsonify({"error": "User not found"}), 404

    session["role"] = "admin"
    log_audit(uid, session.get("email"), "admin.elevate", "user", resource_id=uid,
              changes={"role": "admin"}, req=request)
    current_app.logger.info("Elevación a admin uid=%s", uid)

    return jsonify({
        "success": True,
        "message": "Admin role granted successfully",
        "role": "admin",
        "forceSessionRefresh": True,
    })


@bp.post("/api/admin/refresh-session")
def refresh_session():
    uid = session.get("uid")
    oid = safe_object_id(uid)
    user = get_db().users.find_one({"_id": oid}, {"role": 1}) if oid else None
    if not user:
        return jsonify({"error": "User not found"}), 404
    if user.get("role") != "admin":
        return jsonify({"error": "Admin role required"}), 403

    session["role"] = user["role"]
    return jsonify({
        "success": True,
        "role": user["role"],
        "message": "Session refreshed with admin role",
    })


@bp.get("/api/admin/audit-logs")
def audit_logs():
    limit = max(1, min(_to_int(request.args.get("limit"), 50), 200))
    user_id = request.args.get("userId")
    if user_id:
        entries = get_user_audit_logs(user_id, limit=limit)
    else:
        entries = get_recent_audit_logs(limit=limit)
    return jsonify({"items": serialize_docs(entries)})
