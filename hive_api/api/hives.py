from fastapi import APIRouter, Depends

from hive_api.api.schemas import HiveCreate
from hive_api.database import get_store
from hive_api.services.inventory import Inventory
from hive_api.store import DocumentStore

router = APIRouter(prefix="/api", tags=["hives"])


def get_inventory(store: DocumentStore = Depends(get_store)) -> Inventory:
    return Inventory(store)


@router.get("/hives")
def list_hives(inventory: Inventory = Depends(get_inventory)):
    return [h.to_json() for h in inventory.list_hives()]


@router.post("/hives")
def create_hive(payload: HiveCreate, inventory: Inventory = Depends(get_inventory)):
    return inventory.create_hive(payload.name).to_json()


@router.delete("/hives/{hive_id}")
def delete_hive(hive_id: int, inventory: Inventory = Depends(get_inventory)):
    removed = inventory.delete_hive(hive_id)
    return {"success": True, "boxesRemoved": removed}
