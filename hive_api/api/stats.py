from fastapi import APIRouter, Depends

from hive_api.database import get_store
from hive_api.services.stats import aggregate
from hive_api.store import DocumentStore

router = APIRouter(prefix="/api", tags=["stats"])


@router.get("/stats")
def usage_stats(store: DocumentStore = Depends(get_store)):
    """
    Users per day (trailing week), per-box connect counts, per-user
    connect/release counts and current occupancy totals.
    """
    db = store.load()
    return aggregate(db.usage_stats, db.boxes, active_count=len(db.users))
