from fastapi import APIRouter, Depends, HTTPException

from hive_api.api.schemas import LoginRequest
from hive_api.database import get_store
from hive_api.services.allocator import (
    AdminChoice,
    Allocation,
    Allocator,
    MappingNotFound,
    NoAvailableBox,
)
from hive_api.store import DocumentStore

router = APIRouter(prefix="/api/users", tags=["users"])

NO_AVAILABLE_BOX_MESSAGE = "אין תאים פנויים"
DISCONNECTED_MESSAGE = "התנתקת מהמערכת"
RELEASED_MESSAGE = "התא שוחרר בהצלחה"


def get_allocator(store: DocumentStore = Depends(get_store)) -> Allocator:
    return Allocator(store)


def _allocation_body(result: Allocation) -> dict:
    return {
        "user": result.mapping.to_json(),
        "box": result.box.to_json() if result.box else None,
        "name": result.name,
    }


def _call(fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/login")
def login(payload: LoginRequest, allocator: Allocator = Depends(get_allocator)):
    """
    Hive kiosk login.

    Response carries ``kind`` (admin / existing / allocated / noAvailableBox)
    next to the legacy flags the kiosks already read.
    """
    result = _call(allocator.login, payload.id, payload.hive_id, payload.force_user)

    if isinstance(result, AdminChoice):
        return {"kind": "admin", "isAdmin": True, "id": result.id}
    if isinstance(result, NoAvailableBox):
        return {
            "kind": "noAvailableBox",
            "error": "noAvailableBox",
            "message": NO_AVAILABLE_BOX_MESSAGE,
            "hiveId": result.hive_id,
        }
    if result.existing:
        return {"kind": "existing", "exists": True, **_allocation_body(result)}
    return {"kind": "allocated", "success": True, **_allocation_body(result)}


@router.get("")
def list_users(allocator: Allocator = Depends(get_allocator)):
    return [
        {**a.mapping.to_json(), "box": a.box.to_json() if a.box else None, "name": a.name}
        for a in allocator.list_active()
    ]


@router.get("/{identity}")
def lookup_user(identity: str, allocator: Allocator = Depends(get_allocator)):
    result = _call(allocator.lookup, identity)
    if result is None:
        return {"found": False}
    return {"found": True, **_allocation_body(result)}


@router.post("/{identity}/disconnect")
def disconnect_user(identity: str, allocator: Allocator = Depends(get_allocator)):
    _call(allocator.disconnect, identity)
    return {"success": True, "message": DISCONNECTED_MESSAGE}


@router.post("/{identity}/release")
def release_user(identity: str, allocator: Allocator = Depends(get_allocator)):
    try:
        _call(allocator.release, identity)
    except MappingNotFound:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "message": RELEASED_MESSAGE}


@router.delete("/{identity}")
def admin_delete_user(identity: str, allocator: Allocator = Depends(get_allocator)):
    mapping = _call(allocator.admin_delete, identity)
    return {"success": True, "removed": mapping is not None}
