# fyht4/projects.py
from datetime import datetime, timezone

from flask import Blueprint, request, session, jsonify, current_app
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from .audit import log_audit, get_resource_audit_logs
from .db import get_db
from .serializers import serialize_doc
from .utils.json_body import json_body
from .utils.mongo_safe import safe_object_id, safe_query, safe_update

bp = Blueprint("projects", __name__)

LIST_FIELDS = ("title", "slug", "status", "zipcode", "city", "state", "category", "voteGoal",
               "votesYes", "votesNo", "fundingGoal", "totalRaised", "createdAt",
               "buildStartedAt", "completedAt", "createdBy")
FILTER_ARGS = ("status", "zipcode", "category")
EDITABLE_FIELDS = ("status", "voteGoal", "fundingGoal", "title", "category", "zipcode", "city", "state")


def _pct(value, goal) -> int:
    goal = goal or 0
    if goal <= 0:
        return 0
    # redondeo half-up, como Math.round
    return min(100, int((value or 0) / goal * 100 + 0.5))


def _as_utc(dt: datetime) -> datetime:
    # pymongo devuelve naive en UTC
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)


def _location(p) -> str:
    return f"{p.get('city') or 'Unknown'}, {p.get('state') or 'Unknown'} {p.get('zipcode') or ''}".strip()


def _parse_iso(value):
    if not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return _as_utc(dt)


def _project_item(p):
    item = {"id": p["_id"]}
    item.update({f: p.get(f) for f in LIST_FIELDS})
    item["votePct"] = _pct(p.get("votesYes"), p.get("voteGoal"))
    item["fundPct"] = _pct(p.get("totalRaised"), p.get("fundingGoal"))
    return serialize_doc(item)


def _find_project(project_id):
    oid = safe_object_id(project_id)
    return get_db().projects.find_one({"_id": oid}) if oid else None


@bp.get("/api/admin/projects")
def projects_list():
    # Filtros opcionales ?status=&zipcode=&category=
    query = safe_query({k: request.args[k] for k in FILTER_ARGS if request.args.get(k)})
    docs = get_db().projects.find(query).sort([("zipcode", ASCENDING), ("createdAt", DESCENDING)])
    return jsonify({"projects": [_project_item(p) for p in docs]})


@bp.get("/api/admin/projects/<project_id>")
def project_detail(project_id):
    p = _find_project(project_id)
    if not p:
        return jsonify({"error": "Project not found"}), 404
    history = get_resource_audit_logs("project", str(p["_id"]), limit=50)
    return jsonify({"project": _project_item(p), "history": serialize_doc(history)})


@bp.put("/api/admin/projects")
def project_update():
    body = json_body()
    project_id = body.get("projectId")
    updates = body.get("updates") if isinstance(body.get("updates"), dict) else {}
    if not project_id:
        return jsonify({"error": "Project ID is required"}), 400

    changes = safe_update(updates, EDITABLE_FIELDS)
    if not changes:
        return jsonify({"error": "No valid fields to update"}), 400
    now = datetime.now(timezone.utc)
    if changes.get("status") == "build":
        changes["buildStartedAt"] = now
    elif changes.get("status") == "completed":
        changes["completedAt"] = now

    oid = safe_object_id(project_id)
    p = get_db().projects.find_one_and_update(
        {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
    ) if oid else None
    if not p:
        return jsonify({"error": "Project not found"}), 404

    log_audit(session["uid"], session.get("email"), "admin.project.update", "project",
              resource_id=str(p["_id"]), changes=serialize_doc(changes), req=request)
    current_app.logger.info("Proyecto actualizado id=%s campos=%s", p["_id"], sorted(changes))
    return jsonify({
        "success": True,
        "message": "Project updated successfully",
        "project": serialize_doc({"id": p["_id"], "title": p.get("title"), "status": p.get("status"),
                                  "voteGoal": p.get("voteGoal"), "fundingGoal": p.get("fundingGoal")}),
    })


@bp.delete("/api/admin/projects")
def project_delete():
    project_id = request.args.get("projectId")
    if not project_id:
        return jsonify({"error": "Project ID is required"}), 400
    p = _find_project(project_id)
    if not p:
        return jsonify({"error": "Project not found"}), 404

    get_db().projects.delete_one({"_id": p["_id"]})
    log_audit(session["uid"], session.get("email"), "admin.project.delete", "project",
              resource_id=str(p["_id"]), changes={"title": p.get("title")}, req=request)
    current_app.logger.info("Proyecto borrado id=%s", p["_id"])
    return jsonify({
        "success": True,
        "message": "Project deleted successfully",
        "deletedProject": {"id": str(p["_id"]), "title": p.get("title")},
    })


@bp.post("/api/admin/projects/<project_id>/transition")
def project_transition(project_id):
    p = _find_project(project_id)
    if not p:
        return jsonify({"error": "Not found"}), 404

    body = json_body()
    action = body.get("action")
    now = datetime.now(timezone.utc)

    if action == "start_build":
        # votos y financiación cubiertos, y en fase "funding"
        if p.get("status") != "funding":
            return jsonify({"error": "Project is not ready for build (must be in funding stage)"}), 400
        if (p.get("votesYes") or 0) < (p.get("voteGoal") or 0):
            return jsonify({"error": "Vote goal not reached"}), 400
        if (p.get("totalRaised") or 0) < (p.get("fundingGoal") or 0):
            return jsonify({"error": "Funding goal not reached"}), 400
        changes = {"status": "build", "buildStartedAt": now}
    elif action == "complete":
        opening = now
        if body.get("grandOpeningAt"):
            opening = _parse_iso(body["grandOpeningAt"])
            if opening is None:
                return jsonify({"error": "Invalid grandOpeningAt"}), 400
        changes = {"status": "completed", "completedAt": now,
                   "adminVerifiedComplete": True, "grandOpeningAt": opening}
    else:
        return jsonify({"error": "Unknown action"}), 400

    get_db().projects.update_one({"_id": p["_id"]}, {"$set": changes})
    log_audit(session["uid"], session.get("email"), "admin.project.update", "project",
              resource_id=str(p["_id"]), changes=serialize_doc({"action": action, **changes}), req=request)
    current_app.logger.info("Transición %s proyecto id=%s", action, p["_id"])
    return jsonify({"ok": True})


@bp.get("/api/admin/notifications")
def notifications():
    db = get_db()
    now = datetime.now(timezone.utc)

    ready_for_build = []
    for p in db.projects.find({"status": {"$in": ["voting", "funding"]},
                               "readyForBuildNotified": {"$ne": True}}):
        votes, vote_goal = p.get("votesYes") or 0, p.get("voteGoal") or 0
        raised, funding_goal = p.get("totalRaised") or 0, p.get("fundingGoal") or 0
        if vote_goal <= 0 or funding_goal <= 0 or votes < vote_goal or raised < funding_goal:
            continue
        ready_for_build.append({
            "id": p["_id"],
            "title": p.get("title"),
            "status": p.get("status"),
            "location": _location(p),
            "voteProgress": f"{votes}/{vote_goal}",
            "fundingProgress": f"${raised / 100:.2f}/${funding_goal / 100:.2f}",
            "votesMet": True,
            "fundingMet": True,
        })

    ready_for_completion = []
    for p in db.projects.find({"status": "build",
                               "buildStartedAt": {"$exists": True},
                               "adminVerifiedComplete": False,
                               "readyForCompletionNotified": {"$ne": True}}):
        started = p.get("buildStartedAt")
        ready_for_completion.append({
            "id": p["_id"],
            "title": p.get("title"),
            "buildStartedAt": started,
            "location": _location(p),
            "daysSinceStart": (now - _as_utc(started)).days if started else 0,
        })

    return jsonify(serialize_doc({
        "readyForBuild": ready_for_build,
        "readyForCompletion": ready_for_completion,
    }))


NOTIFICATION_ACTIONS = {
    "markBuildNotified": ({"readyForBuildNotified": True}, "Build notification marked as sent"),
    "moveToBuilding": ({"status": "build", "readyForBuildNotified": True}, "Project moved to building phase"),
    "markCompletionNotified": ({"readyForCompletionNotified": True}, "Completion notification marked as sent"),
    "markCompleted": ({"status": "completed", "adminVerifiedComplete": True,
                       "readyForCompletionNotified": True}, "Project marked as completed"),
}


@bp.post("/api/admin/notifications")
def notifications_action():
    body = json_body()
    p = _find_project(body.get("projectId"))
    if not p:
        return jsonify({"error": "Project not found"}), 404

    action = body.get("action")
    if action not in NOTIFICATION_ACTIONS:
        return jsonify({"error": "Invalid action"}), 400

    changes, message = NOTIFICATION_ACTIONS[action]
    changes = dict(changes)
    now = datetime.now(timezone.utc)
    if action == "moveToBuilding":
        changes["buildStartedAt"] = now
    elif action == "markCompleted":
        changes["completedAt"] = now

    get_db().projects.update_one({"_id": p["_id"]}, {"$set": changes})
    if "status" in changes:
        log_audit(session["uid"], session.get("email"), "admin.project.update", "project",
                  resource_id=str(p["_id"]), changes=serialize_doc({"action": action, **changes}), req=request)
    return jsonify({"success": True, "message": message})
