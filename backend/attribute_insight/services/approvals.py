"""Approval workflow for merge, migration and delete operations.

Proposals move `pending -> approved -> executed|failed` or
`pending -> rejected`. Executed, rejected and failed are terminal.
Notification failures are logged and never change a workflow outcome.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from time import perf_counter
from typing import Any, assert_never

from sqlalchemy import select
from sqlalchemy.orm import Session

from attribute_insight.config import Settings, get_settings
from attribute_insight.eav.catalog import get_attribute
from attribute_insight.errors import InvalidProposalStateError, NotFoundError, sanitize_error
from attribute_insight.models.approval_proposal import ApprovalProposal
from attribute_insight.schemas.approvals import (
    PROPOSAL_PAYLOAD_ADAPTER,
    AttributeDeleteResult,
    DeleteProposalPayload,
    MassActionResult,
    MergeProposalPayload,
    MigrationProposalPayload,
    ProposalExecutionResult,
    ProposalHistoryEntry,
    ProposalPayload,
    ProposalStatus,
    ProposalSubmission,
)
from attribute_insight.schemas.merge import ConflictStrategy
from attribute_insight.services.attribute_merger import delete_attribute, execute_merge
from attribute_insight.services.notifications import EmailNotificationSender, NotificationSender
from attribute_insight.services.set_migration import execute_migration

logger = logging.getLogger(__name__)

AUTO_APPROVED_COMMENT = "auto-approved"


def create_proposal(
    db: Session,
    payload: ProposalPayload | dict[str, Any],
    reason: str = "",
    created_by: int | None = None,
    *,
    notifier: NotificationSender | None = None,
    settings: Settings | None = None,
) -> ApprovalProposal:
    """Persist a new pending proposal and send the "created" notification."""

    typed = _as_payload(payload)
    proposal = ApprovalProposal(
        proposal_type=typed.type,
        payload_json=typed.model_dump(mode="json"),
        reason=reason,
        status=ProposalStatus.PENDING.value,
        created_by=created_by,
    )
    db.add(proposal)
    db.commit()
    db.refresh(proposal)
    logger.info(
        "approvals.created proposal_id=%d type=%s created_by=%s",
        proposal.id,
        proposal.proposal_type,
        created_by,
    )
    send_notification(db, proposal.id, "created", notifier=notifier, settings=settings)
    return proposal


def get_proposal(db: Session, proposal_id: int) -> ApprovalProposal | None:
    return db.scalar(select(ApprovalProposal).where(ApprovalProposal.id == proposal_id))


def list_proposals(db: Session, status: str | None = None) -> list[ApprovalProposal]:
    stmt = select(ApprovalProposal)
    if status is not None:
        stmt = stmt.where(ApprovalProposal.status == status)
    return list(db.scalars(stmt.order_by(ApprovalProposal.created_at.desc(), ApprovalProposal.id.desc())))


def get_pending_proposals(db: Session) -> list[ApprovalProposal]:
    return list_proposals(db, ProposalStatus.PENDING.value)


def approve_proposal(
    db: Session,
    proposal_id: int,
    approved_by: int | None = None,
    comment: str = "",
    *,
    notifier: NotificationSender | None = None,
    settings: Settings | None = None,
) -> bool:
    """Approve a pending proposal; False when missing or not pending."""

    proposal = get_proposal(db, proposal_id)
    if proposal is None or proposal.status != ProposalStatus.PENDING.value:
        return False

    proposal.status = ProposalStatus.APPROVED.value
    proposal.approved_by = approved_by
    proposal.approved_at = datetime.now(timezone.utc)
    proposal.approval_comment = comment
    db.commit()
    logger.info("approvals.approved proposal_id=%d approved_by=%s", proposal_id, approved_by)
    send_notification(db, proposal_id, "approved", notifier=notifier, settings=settings)
    return True


def reject_proposal(
    db: Session,
    proposal_id: int,
    rejected_by: int | None = None,
    reason: str = "",
    *,
    notifier: NotificationSender | None = None,
    settings: Settings | None = None,
) -> bool:
    """Reject a pending proposal; False when missing or not pending."""

    proposal = get_proposal(db, proposal_id)
    if proposal is None or proposal.status != ProposalStatus.PENDING.value:
        return False

    proposal.status = ProposalStatus.REJECTED.value
    proposal.rejected_by = rejected_by
    proposal.rejected_at = datetime.now(timezone.utc)
    proposal.rejection_reason = reason
    db.commit()
    logger.info("approvals.rejected proposal_id=%d rejected_by=%s", proposal_id, rejected_by)
    send_notification(db, proposal_id, "rejected", notifier=notifier, settings=settings)
    return True


def execute_proposal(
    db: Session,
    proposal_id: int,
    *,
    notifier: NotificationSender | None = None,
    settings: Settings | None = None,
) -> ProposalExecutionResult:
    """Run an approved proposal.

    Raises NotFoundError or InvalidProposalStateError when the proposal cannot
    run. Failures of the operation itself mark the proposal `failed` and are
    returned, not raised.
    """

    proposal = db.scalar(select(ApprovalProposal).where(ApprovalProposal.id == proposal_id).with_for_update())
    if proposal is None:
        raise NotFoundError(f"Proposal {proposal_id} not found")
    if proposal.status != ProposalStatus.APPROVED.value:
        raise InvalidProposalStateError("Proposal must be approved before execution")

    started = perf_counter()
    proposal_type = proposal.proposal_type
    # Claimed in the operation's own transaction; a rollback returns it to approved.
    proposal.status = ProposalStatus.EXECUTED.value
    proposal.executed_at = datetime.now(timezone.utc)
    try:
        payload = PROPOSAL_PAYLOAD_ADAPTER.validate_python(proposal.payload_json)
        result = _dispatch(db, payload)
    except Exception as exc:
        db.rollback()
        error = sanitize_error(exc)
        logger.exception(
            "approvals.execution_failed proposal_id=%d type=%s elapsed_ms=%.2f",
            proposal_id,
            proposal_type,
            (perf_counter() - started) * 1000.0,
        )
        failed = get_proposal(db, proposal_id)
        if failed is not None:
            failed.status = ProposalStatus.FAILED.value
            failed.executed_at = datetime.now(timezone.utc)
            failed.execution_result_json = {"error": error}
            db.commit()
        return ProposalExecutionResult(success=False, error=error)

    executed = get_proposal(db, proposal_id)
    if executed is not None:
        executed.execution_result_json = result
        db.commit()
    logger.info(
        "approvals.executed proposal_id=%d type=%s total_ms=%.2f",
        proposal_id,
        proposal_type,
        (perf_counter() - started) * 1000.0,
    )
    send_notification(db, proposal_id, "executed", notifier=notifier, settings=settings)
    return ProposalExecutionResult(success=True, result=result)


def needs_approval(payload: ProposalPayload | dict[str, Any], *, settings: Settings | None = None) -> bool:
    """Whether an operation must wait for a human decision.

    A threshold of 0 means every operation needs approval.
    """

    settings = settings or get_settings()
    if not settings.approval_enabled:
        return False
    threshold = settings.approval_auto_approve_threshold
    if threshold == 0:
        return True
    return affected_count(_as_payload(payload)) >= threshold


def affected_count(payload: ProposalPayload) -> int:
    match payload:
        case MergeProposalPayload():
            return len(payload.source_attributes)
        case MigrationProposalPayload():
            return len(payload.product_ids)
        case DeleteProposalPayload():
            return len(payload.attribute_ids)
        case _:
            assert_never(payload)


def submit_proposal(
    db: Session,
    payload: ProposalPayload | dict[str, Any],
    reason: str = "",
    created_by: int | None = None,
    *,
    notifier: NotificationSender | None = None,
    settings: Settings | None = None,
) -> ProposalSubmission:
    """Create a proposal; run it immediately when no approval is needed."""

    settings = settings or get_settings()
    typed = _as_payload(payload)
    proposal = create_proposal(db, typed, reason, created_by, notifier=notifier, settings=settings)
    if needs_approval(typed, settings=settings):
        return ProposalSubmission(proposal_id=proposal.id, needs_approval=True, status=proposal.status)

    approve_proposal(db, proposal.id, created_by, AUTO_APPROVED_COMMENT, notifier=notifier, settings=settings)
    execution = execute_proposal(db, proposal.id, notifier=notifier, settings=settings)
    refreshed = get_proposal(db, proposal.id)
    return ProposalSubmission(
        proposal_id=proposal.id,
        needs_approval=False,
        status=refreshed.status if refreshed is not None else ProposalStatus.FAILED.value,
        execution=execution,
    )


def create_merge_proposal(
    db: Session,
    source_ids: Sequence[int],
    target_id: int,
    conflict_strategy: ConflictStrategy | str = ConflictStrategy.KEEP_TARGET,
    reason: str = "",
    created_by: int | None = None,
    *,
    delete_source: bool = False,
    notifier: NotificationSender | None = None,
    settings: Settings | None = None,
) -> ApprovalProposal:
    payload = MergeProposalPayload(
        source_attributes=list(source_ids),
        target_attribute=target_id,
        conflict_strategy=conflict_strategy,
        delete_source=delete_source,
    )
    return create_proposal(db, payload, reason, created_by, notifier=notifier, settings=settings)


def create_migration_proposal(
    db: Session,
    entity_ids: Sequence[int],
    target_set_id: int,
    reason: str = "",
    created_by: int | None = None,
    *,
    preserve_values: bool = True,
    notifier: NotificationSender | None = None,
    settings: Settings | None = None,
) -> ApprovalProposal:
    payload = MigrationProposalPayload(
        product_ids=list(entity_ids),
        target_set_id=target_set_id,
        preserve_values=preserve_values,
    )
    return create_proposal(db, payload, reason, created_by, notifier=notifier, settings=settings)


def execute_delete(db: Session, attribute_ids: Sequence[int]) -> AttributeDeleteResult:
    """Hard-delete attributes in one transaction; unknown ids are reported as failed."""

    result = AttributeDeleteResult()
    try:
        for attribute_id in attribute_ids:
            attribute = get_attribute(db, attribute_id)
            if attribute is None:
                result.failed.append(attribute_id)
                continue
            delete_attribute(db, attribute)
            result.deleted.append(attribute_id)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("approvals.delete_failed attribute_ids=%s", list(attribute_ids))
        raise

    logger.info("approvals.attributes_deleted deleted=%s failed=%s", result.deleted, result.failed)
    return result


def send_notification(
    db: Session,
    proposal_id: int,
    action: str,
    *,
    notifier: NotificationSender | None = None,
    settings: Settings | None = None,
) -> bool:
    """Notify about a lifecycle action; delivery errors are logged and swallowed."""

    proposal = get_proposal(db, proposal_id)
    if proposal is None:
        return False
    sender = notifier or EmailNotificationSender(settings)
    try:
        return bool(sender.send(proposal, action))
    except Exception:
        logger.exception("approvals.notification_failed proposal_id=%d action=%s", proposal_id, action)
        return False


def get_proposal_history(db: Session, proposal_id: int) -> list[ProposalHistoryEntry]:
    proposal = get_proposal(db, proposal_id)
    if proposal is None:
        return []

    history = [
        ProposalHistoryEntry(
            action="created",
            timestamp=proposal.created_at,
            user_id=proposal.created_by,
            details=f"Proposal created: {proposal.reason}",
        )
    ]
    if proposal.approved_at is not None:
        history.append(
            ProposalHistoryEntry(
                action="approved",
                timestamp=proposal.approved_at,
                user_id=proposal.approved_by,
                details=proposal.approval_comment or "Approved",
            )
        )
    if proposal.rejected_at is not None:
        history.append(
            ProposalHistoryEntry(
                action="rejected",
                timestamp=proposal.rejected_at,
                user_id=proposal.rejected_by,
                details=proposal.rejection_reason or "Rejected",
            )
        )
    if proposal.executed_at is not None:
        if proposal.status == ProposalStatus.FAILED.value:
            error = (proposal.execution_result_json or {}).get("error", "Execution failed")
            history.append(
                ProposalHistoryEntry(action="failed", timestamp=proposal.executed_at, user_id=None, details=str(error))
            )
        else:
            history.append(
                ProposalHistoryEntry(
                    action="executed",
                    timestamp=proposal.executed_at,
                    user_id=None,
                    details="Proposal executed",
                )
            )
    return history


def delete_proposal(db: Session, proposal_id: int) -> bool:
    proposal = get_proposal(db, proposal_id)
    if proposal is None:
        return False
    db.delete(proposal)
    db.commit()
    logger.info("approvals.deleted proposal_id=%d", proposal_id)
    return True


def mass_approve(
    db: Session,
    proposal_ids: Sequence[int],
    approved_by: int | None = None,
    comment: str = "",
    *,
    notifier: NotificationSender | None = None,
    settings: Settings | None = None,
) -> MassActionResult:
    result = MassActionResult()
    for proposal_id in proposal_ids:
        if approve_proposal(db, proposal_id, approved_by, comment, notifier=notifier, settings=settings):
            result.processed += 1
        else:
            result.skipped += 1
    return result


def mass_reject(
    db: Session,
    proposal_ids: Sequence[int],
    rejected_by: int | None = None,
    reason: str = "",
    *,
    notifier: NotificationSender | None = None,
    settings: Settings | None = None,
) -> MassActionResult:
    result = MassActionResult()
    for proposal_id in proposal_ids:
        if reject_proposal(db, proposal_id, rejected_by, reason, notifier=notifier, settings=settings):
            result.processed += 1
        else:
            result.skipped += 1
    return result


def _dispatch(db: Session, payload: ProposalPayload) -> dict[str, Any]:
    match payload:
        case MergeProposalPayload():
            merged = execute_merge(
                db,
                payload.source_attributes,
                payload.target_attribute,
                payload.conflict_strategy,
                payload.delete_source,
            )
            return merged.model_dump(mode="json")
        case MigrationProposalPayload():
            migrated = execute_migration(db, payload.product_ids, payload.target_set_id, payload.preserve_values)
            return migrated.model_dump(mode="json")
        case DeleteProposalPayload():
            return execute_delete(db, payload.attribute_ids).model_dump(mode="json")
        case _:
            assert_never(payload)


def _as_payload(payload: ProposalPayload | dict[str, Any]) -> ProposalPayload:
    if isinstance(payload, dict):
        return PROPOSAL_PAYLOAD_ADAPTER.validate_python(payload)
    return payload
