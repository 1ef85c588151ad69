"""
ORM-level immutability enforcement for posted ledger data.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | Rule
--------------------|------------------------------------------------------
JournalEntry        | Once posted, only posted -> void may happen, together
                    | with voided_at / voided_by_id / void_reason. A void
                    | entry is frozen. Posted and void entries are never
                    | deleted.
JournalLine         | Insert-only. Never updated, never deleted.
PaymentApplication  | Insert-only. Never updated, never deleted.

updated_at / updated_by_id are audit metadata and may always change.

===============================================================================
HOW IT WORKS
===============================================================================

Listeners run on ``before_update`` / ``before_delete`` during flush. A
violation raises ImmutabilityViolationError before any SQL is sent, and the
surrounding service rolls the transaction back.

Raw SQL bypasses these checks; every write path in this codebase goes
through the ORM.

Usage:

    from estate_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from estate_kernel.exceptions import ImmutabilityViolationError
from estate_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})
_VOID_FIELDS = frozenset({"status", "voided_at", "voided_by_id", "void_reason"})


def _violation(entity_type: str, target, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "field": field,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _changed_fields(target) -> list[str]:
    return [
        attr.key
        for attr in inspect(target).attrs
        if attr.key not in _AUDIT_FIELDS and attr.history.has_changes()
    ]


def _check_journal_entry_update(mapper, connection, target):
    """
    Allow draft -> posted and posted -> void; block everything else.

    The status before this flush is read from attribute history: if status
    is changing, ``deleted`` holds the old value; otherwise the current value
    is the old value.
    """
    from estate_kernel.models.journal import JournalEntryStatus

    status_history = get_history(target, "status")
    if status_history.deleted:
        old_status = status_history.deleted[0]
    else:
        old_status = target.status

    if old_status == JournalEntryStatus.DRAFT:
        return

    changed = _changed_fields(target)
    if not changed:
        return

    if old_status == JournalEntryStatus.POSTED:
        if target.status == JournalEntryStatus.VOID:
            illegal = [f for f in changed if f not in _VOID_FIELDS]
        else:
            illegal = changed
        if not illegal:
            return
        raise _violation(
            "JournalEntry",
            target,
            "UPDATE",
            f"Cannot modify field '{illegal[0]}' on posted journal entry",
            field=illegal[0],
        )

    raise _violation(
        "JournalEntry",
        target,
        "UPDATE",
        f"Cannot modify field '{changed[0]}' on void journal entry",
        field=changed[0],
    )


def _check_journal_entry_delete(mapper, connection, target):
    from estate_kernel.models.journal import JournalEntryStatus

    if target.status != JournalEntryStatus.DRAFT:
        raise _violation(
            "JournalEntry",
            target,
            "DELETE",
            f"{target.status} journal entries cannot be deleted",
        )


def _check_journal_line_update(mapper, connection, target):
    if _changed_fields(target):
        raise _violation(
            "JournalLine", target, "UPDATE", "Journal lines cannot be modified"
        )


def _check_journal_line_delete(mapper, connection, target):
    raise _violation("JournalLine", target, "DELETE", "Journal lines cannot be deleted")


def _check_payment_application_update(mapper, connection, target):
    if _changed_fields(target):
        raise _violation(
            "PaymentApplication",
            target,
            "UPDATE",
            "Payment applications cannot be modified",
        )


def _check_payment_application_delete(mapper, connection, target):
    raise _violation(
        "PaymentApplication",
        target,
        "DELETE",
        "Payment applications cannot be deleted",
    )


def _listeners():
    from estate_kernel.models.journal import JournalEntry, JournalLine
    from estate_kernel.models.payment import PaymentApplication

    return [
        (JournalEntry, "before_update", _check_journal_entry_update),
        (JournalEntry, "before_delete", _check_journal_entry_delete),
        (JournalLine, "before_update", _check_journal_line_update),
        (JournalLine, "before_delete", _check_journal_line_delete),
        (PaymentApplication, "before_update", _check_payment_application_update),
        (PaymentApplication, "before_delete", _check_payment_application_delete),
    ]


def register_immutability_listeners() -> None:
    """Register all immutability listeners (idempotent)."""
    for target, name, fn in _listeners():
        if not event.contains(target, name, fn):
            event.listen(target, name, fn)


def unregister_immutability_listeners() -> None:
    """Remove the listeners. TESTS ONLY."""
    for target, name, fn in _listeners():
        if event.contains(target, name, fn):
            event.remove(target, name, fn)
