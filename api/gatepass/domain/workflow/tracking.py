import re
import secrets
import string

from gatepass.core.errors import ConflictError, ValidationError
from gatepass.domain.workflow.ports import WorkflowStore

TRACKING_CODE_LENGTH = 8
TRACKING_ALPHABET = string.ascii_uppercase + string.digits
TRACKING_CODE_RE = re.compile(r"^[A-Z0-9]{8}$")


def generate_tracking_code() -> str:
    return "".join(secrets.choice(TRACKING_ALPHABET) for _ in range(TRACKING_CODE_LENGTH))


def normalize_tracking_code(code: str) -> str:
    code = (code or "").strip().upper()
    if not TRACKING_CODE_RE.match(code):
        raise ValidationError("Tracking code must be 8 characters A-Z or 0-9", details={"field": "tracking_code"})
    return code


async def issue_tracking_code(store: WorkflowStore, attempts: int, generate=generate_tracking_code) -> str:
    """Draw codes until one is unused; the unique column still backs this up."""
    for _ in range(attempts):
        code = generate()
        if not await store.tracking_code_exists(code):
            return code
    raise ConflictError("Could not allocate a unique tracking code, try again")
