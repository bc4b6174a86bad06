from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Callable, Dict, List, Tuple

import requests
from flask import current_app

log = logging.getLogger("nexus.notify")

GRAPH_API = "https://graph.facebook.com/v20.0"


def notify_ticket_escalated(payload: Dict[str, Any]) -> None:
    """
    Tell the NOC a ticket was escalated. Every channel is best-effort:
    a failing channel is logged and the next one still runs.

    payload keys: id, title, priority, reason, assigned_to, escalated_by
    """
    cfg = current_app.config
    text = escalation_text(payload, cfg.get("PORTAL_BASE_URL", ""))

    channels: List[Tuple[str, Callable[[Dict[str, Any], Dict[str, Any], str], None]]] = [
        ("whatsapp", _send_whatsapp),
        ("email", _send_email),
    ]
    for name, send in channels:
        try:
            send(cfg, payload, text)
        except Exception:
            log.exception("Escalation notify failed | channel=%s ticket=%s", name, payload.get("id"))


def escalation_text(payload: Dict[str, Any], portal_url: str = "") -> str:
    lines = [
        "Ticket escalated",
        f"Title: {payload.get('title') or ''}",
        f"Priority: {payload.get('priority') or ''}",
        f"Reason: {payload.get('reason') or ''}",
        f"Assigned to: {payload.get('assigned_to') or '-'}",
        f"By: {payload.get('escalated_by') or ''}",
        f"ID: {payload.get('id') or ''}",
    ]
    portal = (portal_url or "").rstrip("/")
    if portal:
        lines.append(f"Open: {portal}/tickets/{payload.get('id') or ''}")
    return "\n".join(lines)


# =========================================================
# Channels
# =========================================================
def _send_whatsapp(cfg: Dict[str, Any], payload: Dict[str, Any], text: str) -> None:
    """WhatsApp Cloud API (Meta) text message to the on-call number."""
    if not cfg.get("WHATSAPP_ENABLED"):
        return
    token = cfg.get("WHATSAPP_TOKEN")
    phone_number_id = cfg.get("WHATSAPP_PHONE_NUMBER_ID")
    to = cfg.get("WHATSAPP_TO")
    if not (token and phone_number_id and to):
        log.warning("WhatsApp enabled but not fully configured; skipping")
        return

    resp = requests.post(
        f"{GRAPH_API}/{phone_number_id}/messages",
        headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
        json={"messaging_product": "whatsapp", "to": to, "type": "text", "text": {"body": text}},
        timeout=10,
    )
    resp.raise_for_status()


def _send_email(cfg: Dict[str, Any], payload: Dict[str, Any], text: str) -> None:
    """Plain-text SMTP mail (STARTTLS) to EMAIL_TO."""
    if not cfg.get("EMAIL_ENABLED"):
        return
    host = cfg.get("SMTP_HOST")
    recipients = [x.strip() for x in (cfg.get("EMAIL_TO") or "").split(",") if x.strip()]
    sender = cfg.get("EMAIL_FROM") or cfg.get("SMTP_USER")
    if not (host and recipients and sender):
        log.warning("E-mail enabled but not fully configured; skipping")
        return

    msg = EmailMessage()
    msg["Subject"] = f"[{cfg.get('COMPANY_NAME', 'Nexus ISP')}] Escalated: {payload.get('title') or payload.get('id')}"
    msg["From"] = sender
    msg["To"] = ", ".join(recipients)
    msg.set_content(text)

    with smtplib.SMTP(host, int(cfg.get("SMTP_PORT") or 587), timeout=10) as smtp:
        smtp.starttls()
        if cfg.get("SMTP_USER") and cfg.get("SMTP_PASS"):
            smtp.login(cfg["SMTP_USER"], cfg["SMTP_PASS"])
        smtp.send_message(msg)
