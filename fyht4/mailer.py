# fyht4/mailer.py
import logging

import resend
from flask import Blueprint, current_app, jsonify, request
from markupsafe import escape

from .utils.json_body import json_body

logger = logging.getLogger("mailer")

bp = Blueprint("mailer", __name__)

DEFAULT_FROM = "FYHT4 <no-reply@fyht4.com>"


class MailerNotConfigured(RuntimeError):
    pass


def _api_key() -> str:
    key = (current_app.config.get("RESEND_API_KEY") or "").strip()
    if not key:
        raise MailerNotConfigured("Missing RESEND_API_KEY")
    return key


def send_email(to, subject: str, html: str, sender: str | None = None) -> dict:
    resend.api_key = _api_key()
    payload = {
        "from": sender or current_app.config.get("RESEND_FROM_EMAIL") or DEFAULT_FROM,
        "to": to if isinstance(to, list) else [to],
        "subject": subject,
        "html": html,
    }
    data = resend.Emails.send(payload)
    logger.info("mail.sent to=%s subject=%s", payload["to"], subject)
    return data


def send_email_safe(to, subject: str, html: str) -> bool:
    """Envío best-effort: sin destinatario o sin API key no hace nada."""
    if not to or not (current_app.config.get("RESEND_API_KEY") or "").strip():
        return False
    try:
        send_email(to, subject, html)
    except Exception as e:
        logger.error("mail.failed to=%s subject=%s: %s", to, subject, e)
        return False
    return True


def _greeting(name) -> str:
    return f"Hi {escape(name)}," if name else "Hi,"


def approval_email_html(name, title, zipcode, vote_goal, funding_goal_dollars, url) -> str:
    return f"""
  <div style="font-family:Inter,system-ui,-apple-system,Segoe UI,Roboto,Arial,sans-serif;line-height:1.55">
    <h2 style="margin:0 0 8px 0">Your project was approved</h2>
    <p style="margin:0 0 12px 0">{_greeting(name)} your proposal <strong>{escape(title)}</strong> (ZIP {escape(zipcode)}) has been approved and is now live for community voting.</p>
    <ul style="padding-left:18px;margin:0 0 12px 0">
      <li>Vote goal: <strong>{vote_goal}</strong></li>
      <li>Funding goal: <strong>${funding_goal_dollars}</strong></li>
    </ul>
    <p style="margin:0 0 16px 0">Share the page and encourage neighbors to vote and donate:</p>
    <p><a href="{escape(url)}" style="background:#111827;color:#fff;padding:12px 16px;border-radius:10px;text-decoration:none;display:inline-block">View Project</a></p>
    <p style="margin-top:16px;color:#6b7280;font-size:12px">FYHT4</p>
  </div>"""


def rejection_email_html(name, title, notes=None) -> str:
    notes_html = ""
    if notes:
        body = str(escape(notes)).replace("\n", "<br/>")
        notes_html = f'<p style="margin:0 0 12px 0"><strong>Notes from the review team:</strong><br/>{body}</p>'
    return f"""
  <div style="font-family:Inter,system-ui,-apple-system,Segoe UI,Roboto,Arial,sans-serif;line-height:1.55">
    <h2 style="margin:0 0 8px 0">Project decision: not approved</h2>
    <p style="margin:0 0 12px 0">{_greeting(name)} thanks for your proposal <strong>{escape(title)}</strong>. After review, we weren't able to approve it this time.</p>
    {notes_html}
    <p style="margin:0 0 12px 0">We encourage you to revise and resubmit in the future.</p>
    <p style="margin-top:16px;color:#6b7280;font-size:12px">FYHT4</p>
  </div>"""


@bp.post("/api/send-email")
def send_email_route():
    body = json_body()
    to, subject, html = body.get("to"), body.get("subject"), body.get("html")
    if not to or not subject or not html:
        return jsonify({"success": False, "error": "to, subject and html are required"}), 400
    try:
        data = send_email(to, subject, html, sender="noreply@fyht4.com")
    except Exception as e:
        current_app.logger.error("send-email falló to=%s: %s", to, e, exc_info=True)
        return jsonify({"success": False, "error": str(e)}), 500
    return jsonify({"success": True, "data": data})
