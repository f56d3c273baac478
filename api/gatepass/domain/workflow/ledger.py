"""
Pure rules over an approval ledger.

A ledger is the list of per-step approval rows generated for one visitor
request. Nothing in here touches the store; the engine feeds these functions
whatever it just read and persists what they return.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from gatepass.core.db.repo.models import EApprovalStatus, ERequestStatus

TERMINAL = frozenset({ERequestStatus.APPROVED, ERequestStatus.REJECTED})


def aggregate_status(statuses: Iterable[str]) -> ERequestStatus:
    """
    Overall request status from its approval rows.

    Any rejection wins regardless of step order; approved needs at least one
    row and every row approved; everything else is pending.
    """
    seen = [EApprovalStatus(s) for s in statuses]
    if any(s == EApprovalStatus.REJECTED for s in seen):
        return ERequestStatus.REJECTED
    if seen and all(s == EApprovalStatus.APPROVED for s in seen):
        return ERequestStatus.APPROVED
    return ERequestStatus.PENDING


@dataclass(frozen=True)
class StatusTransition:
    request_id: str
    previous: ERequestStatus
    current: ERequestStatus
    reason: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.previous != self.current

    @property
    def is_terminal(self) -> bool:
        return self.changed and self.current in TERMINAL


def first_rejection_reason(rows: Sequence) -> Optional[str]:
    for row in sorted(rows, key=lambda r: r.step_no):
        if row.status == EApprovalStatus.REJECTED and row.reason:
            return row.reason
    return None


def is_actionable(row, ledger: Sequence) -> bool:
    """
    Step gate used when listing what an approver has to act on.

    Step 1 is always open; any other step opens once the row for
    ``step_no - 1`` on the same request is approved.
    """
    if row.step_no == 1:
        return True
    previous = [r for r in ledger if r.step_no == row.step_no - 1]
    return any(r.status == EApprovalStatus.APPROVED for r in previous)


def actionable_rows(rows: Sequence, ledger: Sequence) -> List:
    return [r for r in rows if r.status == EApprovalStatus.PENDING and is_actionable(r, ledger)]
