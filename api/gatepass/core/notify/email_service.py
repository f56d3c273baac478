# gatepass/core/notify/email_service.py
"""
Visitor notification mails.

Sending is best-effort: every failure is logged and dropped so that an SMTP
outage never blocks or undoes an approval decision. The blocking ``smtplib``
call runs in a worker thread and is bounded by ``SMTP_TIMEOUT_SECONDS``.
"""
from __future__ import annotations

import asyncio
import datetime as dt
import logging
import smtplib
from email.message import EmailMessage
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from gatepass.core.config.config import Settings, settings as default_settings
from gatepass.core.db.repo.models import Warehouse, WarehouseTimeSlot
from gatepass.core.errors import NotificationError

log = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

APPROVED_SUBJECT = "Your Visitor Request Has Been Approved"
REJECTED_SUBJECT = "Your Visitor Request Has Been Rejected"
DEFAULT_REJECTION_REASON = "No specific reason provided"


class EmailNotificationService:
    def __init__(self, config: Settings | None = None):
        self.config = config or default_settings
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(["html"]),
        )

    # ---------- rendering ----------
    def render_approved(
        self,
        *,
        visitor_name: Optional[str],
        tracking_code: str,
        warehouse: Warehouse,
        slot: WarehouseTimeSlot,
        date: dt.date,
    ) -> str:
        return self.env.get_template("approved.html").render(
            visitor_name=visitor_name or "Visitor",
            tracking_code=tracking_code,
            warehouse_name=warehouse.name,
            slot_name=slot.name,
            from_time=slot.from_time.strftime("%H:%M"),
            to_time=slot.to_time.strftime("%H:%M"),
            date=date.isoformat(),
        )

    def render_rejected(self, *, visitor_name: Optional[str], tracking_code: str, reason: Optional[str]) -> str:
        return self.env.get_template("rejected.html").render(
            visitor_name=visitor_name or "Visitor",
            tracking_code=tracking_code,
            reason=reason or DEFAULT_REJECTION_REASON,
        )

    # ---------- notifier port ----------
    async def notify_approved(
        self,
        recipient: str,
        tracking_code: str,
        warehouse: Warehouse,
        slot: WarehouseTimeSlot,
        date: dt.date,
        *,
        visitor_name: Optional[str] = None,
    ) -> None:
        html = self.render_approved(
            visitor_name=visitor_name, tracking_code=tracking_code, warehouse=warehouse, slot=slot, date=date,
        )
        await self.send(recipient, APPROVED_SUBJECT, html)

    async def notify_rejected(
        self,
        recipient: str,
        tracking_code: str,
        reason: Optional[str],
        *,
        visitor_name: Optional[str] = None,
    ) -> None:
        html = self.render_rejected(visitor_name=visitor_name, tracking_code=tracking_code, reason=reason)
        await self.send(recipient, REJECTED_SUBJECT, html)

    # ---------- transport ----------
    async def send(self, recipient: str, subject: str, html: str) -> bool:
        if not self.config.NOTIFICATIONS_ENABLED:
            log.debug("notifications disabled; dropping %r to %s", subject, recipient)
            return False
        if not self.config.SMTP_HOST:
            log.warning("SMTP_HOST not configured; dropping %r to %s", subject, recipient)
            return False

        message = self._build_message(recipient, subject, html)
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._deliver, message),
                timeout=self.config.SMTP_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            log.warning("email to %s timed out after %.1fs", recipient, self.config.SMTP_TIMEOUT_SECONDS)
            return False
        except (NotificationError, smtplib.SMTPException, OSError) as exc:
            log.error("email sending failed for %s: %s", recipient, exc)
            return False

        log.info("email %r sent to %s", subject, recipient)
        return True

    def _build_message(self, recipient: str, subject: str, html: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.config.SMTP_FROM
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html, subtype="html")
        return msg

    def _deliver(self, message: EmailMessage) -> None:
        cfg = self.config
        timeout = cfg.SMTP_TIMEOUT_SECONDS
        if cfg.SMTP_USE_SSL:
            client = smtplib.SMTP_SSL(cfg.SMTP_HOST, cfg.SMTP_PORT, timeout=timeout)
        else:
            client = smtplib.SMTP(cfg.SMTP_HOST, cfg.SMTP_PORT, timeout=timeout)
        with client as smtp:
            if not cfg.SMTP_USE_SSL:
                smtp.starttls()
            if cfg.SMTP_USER:
                password = cfg.SMTP_PASSWORD.get_secret_value() if cfg.SMTP_PASSWORD else ""
                smtp.login(cfg.SMTP_USER, password)
            refused = smtp.send_message(message)
        if refused:
            raise NotificationError(f"recipient refused: {', '.join(refused)}")
