"""
quotedesk/mailer.py

Outbound email.

Transports (MAIL_TRANSPORT):
- console: log the message (development / tests)
- smtp: send through MAIL_SMTP:MAIL_PORT with STARTTLS
"""

from __future__ import annotations

import smtplib
from email.mime.text import MIMEText
from typing import Optional

from flask import current_app


def _smtp_send(to_email: str, subject: str, body: str, subtype: str) -> bool:
    cfg = current_app.config
    msg = MIMEText(body, subtype, "utf-8")
    msg["Subject"] = subject
    msg["From"] = cfg.get("MAIL_SENDER")
    msg["To"] = to_email

    try:
        with smtplib.SMTP(cfg["MAIL_SMTP"], cfg["MAIL_PORT"]) as smtp:
            smtp.starttls()
            username: Optional[str] = cfg.get("MAIL_USERNAME")
            password: Optional[str] = cfg.get("MAIL_PASSWORD")
            if username and password:
                smtp.login(username, password)
            smtp.send_message(msg)
        return True
    except (smtplib.SMTPException, OSError) as exc:
        current_app.logger.exception("SMTP send failed: %s", exc)
        return False


def send_mail(to_email: str, subject: str, body: str, *, html: bool = False) -> bool:
    """Send one message. Returns False if the transport failed."""
    transport = (current_app.config.get("MAIL_TRANSPORT") or "console").lower()

    if transport == "console":
        current_app.logger.info("[MAIL console] %s -> %s :: %s", to_email, subject, body)
        return True

    if transport == "smtp":
        return _smtp_send(to_email, subject, body, "html" if html else "plain")

    current_app.logger.error("Unknown MAIL_TRANSPORT: %r", transport)
    return False


def send_password_reset_email(email: str, token: str) -> bool:
    base_url = current_app.config["APP_BASE_URL"].rstrip("/")
    hours = current_app.config["RESET_TOKEN_EXPIRY_HOURS"]
    subject = f"{current_app.config['APP_NAME']} password reset"
    body = (
        "A password reset was requested for your account.\n\n"
        f"Reset your password: {base_url}/reset-password?token={token}\n\n"
        f"This link expires in {hours} hours and can be used once."
    )
    return send_mail(email, subject, body)


def send_purchase_order_email(po, supplier, pdf_url: str) -> bool:
    """Send the PO link to the supplier's PO address. Supplier-facing: no sell prices or margins."""
    contact = supplier.key_contact_name or supplier.company_name
    lines = [
        f"<h2>Purchase Order {po.po_number}</h2>",
        f"<p>Dear {contact},</p>",
        f"<p>Please find our purchase order {po.po_number} for your review.</p>",
        "<ul>",
        f"<li>PO Number: {po.po_number}</li>",
        f"<li>Date: {po.created_at:%d/%m/%Y}</li>",
        f"<li>Total Amount: ${po.total_amount}</li>",
        f"<li>Status: {po.status.value.upper()}</li>",
        "</ul>",
    ]
    if po.notes:
        lines.append(f"<p><strong>Notes:</strong><br>{po.notes}</p>")
    lines.append(f'<p><a href="{pdf_url}">Download Purchase Order PDF</a></p>')
    lines.append("<p>Best regards</p>")
    return send_mail(supplier.po_email, f"Purchase Order {po.po_number}", "\n".join(lines), html=True)


def notify_owner(title: str, content: str) -> bool:
    owner = current_app.config.get("OWNER_EMAIL")
    if not owner:
        current_app.logger.warning("OWNER_EMAIL not configured; notification dropped: %s", title)
        return False
    return send_mail(owner, title, content)
