"""Approval workflow notification delivery."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Protocol

from attribute_insight.config import Settings, get_settings
from attribute_insight.models.approval_proposal import ApprovalProposal

logger = logging.getLogger(__name__)

SUBJECT_TEMPLATE = "[Attribute Insight] Proposal #{proposal_id} {action}"
BODY_TEMPLATE = (
    "Proposal #{proposal_id} ({type}) was {action}.\n"
    "\n"
    "Reason: {reason}\n"
    "Created at: {created_at}\n"
)


class NotificationSender(Protocol):
    def send(self, proposal: ApprovalProposal, action: str) -> bool:
        """Deliver a notification; return False when nothing was sent."""


def template_vars(proposal: ApprovalProposal, action: str) -> dict[str, Any]:
    return {
        "proposal_id": proposal.id,
        "type": proposal.proposal_type,
        "reason": proposal.reason or "-",
        "action": action,
        "created_at": proposal.created_at.isoformat() if proposal.created_at else "-",
    }


def render_notification(proposal: ApprovalProposal, action: str) -> tuple[str, str]:
    """Return (subject, body) for a proposal lifecycle notification."""

    values = template_vars(proposal, action)
    return SUBJECT_TEMPLATE.format(**values), BODY_TEMPLATE.format(**values)


class EmailNotificationSender:
    """Sends plain-text mail to the configured approval address over SMTP."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def send(self, proposal: ApprovalProposal, action: str) -> bool:
        recipient = self.settings.approval_notify_email
        if not recipient:
            return False

        subject, body = render_notification(proposal, action)
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.settings.smtp_sender
        message["To"] = recipient
        message.set_content(body)

        with smtplib.SMTP(
            self.settings.smtp_host,
            self.settings.smtp_port,
            timeout=self.settings.smtp_timeout_seconds,
        ) as smtp:
            smtp.send_message(message)
        logger.info(
            "approvals.notification_sent proposal_id=%d action=%s recipient=%s",
            proposal.id,
            action,
            recipient,
        )
        return True
