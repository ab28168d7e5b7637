"""Card lock and override endpoints."""

from fastapi import APIRouter

from ...models import CardLock, CardLockRequest, OverrideRequest
from ..dependencies import LocksDep, RulesEngineDep

router = APIRouter(prefix="/card", tags=["card"])


@router.post("/lock", response_model=CardLock)
def set_card_lock(request: CardLockRequest, locks: LocksDep) -> CardLock:
    """Lock or unlock the card at a merchant; locking stamps `locked_at`."""
    return locks.set_card_lock(request.merchant_id, request.locked)


@router.get("/locks", response_model=list[CardLock])
def list_locks(locks: LocksDep) -> list[CardLock]:
    return locks.get_all_locks()


@router.post("/override")
def enable_override(request: OverrideRequest, rules: RulesEngineDep) -> dict:
    """Let the next purchase at the merchant through a cap or lock once."""
    rules.set_override_flag(request.merchant_id, True)
    return {
        "success": True,
        "message": "Override enabled for next transaction",
        "merchant_id": request.merchant_id,
    }
