# fyht4/audit.py
import logging
from datetime import datetime, timezone

from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from .db import get_db
from .utils.mongo_safe import safe_object_id

logger = logging.getLogger("audit")

AUDIT_ACTIONS = (
    "admin.elevate",
    "admin.project.update",
    "admin.project.delete",
    "admin.user.update",
    "admin.user.ban",
    "admin.settings.update",
)
AUDIT_RESOURCES = ("user", "project", "proposal", "donation", "settings")


def _client_info(req):
    if req is None:
        return "unknown", "unknown"
    ip = (req.headers.get("X-Forwarded-For")
          or req.headers.get("X-Real-IP")
          or "unknown")
    return ip, req.headers.get("User-Agent") or "unknown"


def log_audit(user_id, user_email, action, resource, resource_id=None, changes=None,
              req=None, status="success", error_message=None):
    """Registra una acción de admin.

    Los fallos del store se loguean y no se propagan; una acción o recurso
    desconocidos son un error de programación y lanzan ValueError.
    """
    if action not in AUDIT_ACTIONS:
        raise ValueError(f"unknown audit action: {action}")
    if resource not in AUDIT_RESOURCES:
        raise ValueError(f"unknown audit resource: {resource}")
    if status not in ("success", "failure"):
        raise ValueError(f"unknown audit status: {status}")

    ip, ua = _client_info(req)
    doc = {
        "userId": safe_object_id(user_id) or user_id,
        "userEmail": user_email,
        "action": action,
        "resource": resource,
        "resourceId": resource_id,
        "changes": changes,
        "ipAddress": ip,
        "userAgent": ua,
        "status": status,
        "errorMessage": error_message,
        "timestamp": datetime.now(timezone.utc),
    }
    try:
        get_db().audit_logs.insert_one(doc)
    except PyMongoError as e:
        logger.error("audit.insert.failed action=%s user=%s: %s", action, user_id, e)


def _find(query, limit):
    try:
        cur = get_db().audit_logs.find(query).sort("timestamp", DESCENDING).limit(limit)
        return list(cur)
    except PyMongoError as e:
        logger.error("audit.query.failed query=%s: %s", query, e)
        return []


def get_recent_audit_logs(limit=50):
    return _find({}, limit)


def get_user_audit_logs(user_id, limit=50):
    return _find({"userId": safe_object_id(user_id) or user_id}, limit)


def get_resource_audit_logs(resource, resource_id, limit=50):
    return _find({"resource": resource, "resourceId": resource_id}, limit)
