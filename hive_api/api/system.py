from fastapi import APIRouter, Depends

from hive_api.api.users import get_allocator
from hive_api.services.allocator import Allocator

router = APIRouter(prefix="/api", tags=["system"])

RESET_MESSAGE = "המערכת אופסה בהצלחה"
HISTORY_CLEARED_MESSAGE = "ההיסטוריה נמחקה בהצלחה"


@router.post("/reset")
def reset_system(allocator: Allocator = Depends(get_allocator)):
    """Free every box and drop all active users. History is kept."""
    dropped = allocator.reset()
    return {"success": True, "message": RESET_MESSAGE, "usersDropped": dropped}


@router.post("/clear-history")
def clear_history(allocator: Allocator = Depends(get_allocator)):
    cleared = allocator.clear_history()
    return {"success": True, "message": HISTORY_CLEARED_MESSAGE, "eventsCleared": cleared}
