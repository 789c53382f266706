from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import ValidationError

from hive_api.api.hives import get_inventory
from hive_api.api.schemas import BoxCreate
from hive_api.services.inventory import BoxNotFound, Inventory, suggest_ip

router = APIRouter(prefix="/api/boxes", tags=["boxes"])


@router.get("")
def list_boxes(hive_id: Optional[int] = Query(default=None, alias="hiveId"), inventory: Inventory = Depends(get_inventory)):
    return [b.to_json() for b in inventory.list_boxes(hive_id)]


@router.post("")
def create_box(payload: BoxCreate, inventory: Inventory = Depends(get_inventory)):
    box = inventory.create_box(payload.hive_id, payload.box_number, payload.ip_address)
    return box.to_json()


@router.get("/suggest-ip/{hive_id}/{box_number}")
def suggested_ip(hive_id: int, box_number: int):
    return {"suggestedIp": suggest_ip(hive_id, box_number)}


@router.put("/{box_id}")
def update_box(box_id: int, patch: Dict[str, Any] = Body(...), inventory: Inventory = Depends(get_inventory)):
    try:
        return inventory.update_box(box_id, patch).to_json()
    except BoxNotFound:
        raise HTTPException(status_code=404, detail="Box not found")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid box fields: {e.error_count()} error(s)")


@router.delete("/{box_id}")
def delete_box(box_id: int, inventory: Inventory = Depends(get_inventory)):
    inventory.delete_box(box_id)
    return {"success": True}
