import datetime as dt
import logging

from gatepass.core.db.repo.models import VisitorRequest
from gatepass.core.errors import ConflictError
from gatepass.domain.workflow.ports import WorkflowStore

log = logging.getLogger(__name__)


class SlotGuard:
    """
    Booking exclusivity for (warehouse, date, time slot).

    Both checks are read-then-decide. They give callers a precise error, while
    the partial unique index on approved bookings closes the race; the store
    turns that violation into a ``ConflictError`` as well.
    """

    def __init__(self, store: WorkflowStore):
        self.store = store

    async def check_submission(self, *, name: str, date: dt.date, warehouse_id: str, slot_id: str) -> None:
        booked = await self.store.find_approved_booking(warehouse_id, date, slot_id)
        if booked is not None:
            log.info("submission refused: slot %s on %s already held by %s", slot_id, date, booked.id)
            raise ConflictError(
                "This time slot is already booked for the selected date",
                details={"warehouse_id": warehouse_id, "date": date.isoformat(), "warehouse_time_slot_id": slot_id},
            )

        duplicate = await self.store.find_duplicate_request(name, date, warehouse_id, slot_id)
        if duplicate is not None:
            raise ConflictError("A visitor request with the same name, date and time slot already exists")

    async def check_approval(self, request: VisitorRequest) -> None:
        holder = await self.store.find_approved_booking(
            request.warehouse_id, request.date, request.warehouse_time_slot_id,
            exclude_request_id=request.id,
        )
        if holder is not None:
            log.info("approval refused for %s: slot already held by %s", request.id, holder.id)
            raise ConflictError(
                "Another visitor request already holds this time slot",
                details={"visitor_request_id": request.id, "holder_id": holder.id},
            )
