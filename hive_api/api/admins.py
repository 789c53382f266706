from fastapi import APIRouter, Depends

from hive_api.api.schemas import AdminCreate
from hive_api.api.settings import get_directory
from hive_api.models import normalize_id
from hive_api.services.directory import Directory

router = APIRouter(prefix="/api", tags=["admins"])


@router.get("/admin/check/{identity}")
def check_admin(identity: str, directory: Directory = Depends(get_directory)):
    identity = normalize_id(identity)
    return {"isAdmin": directory.is_admin(identity), "id": identity}


@router.get("/admins")
def list_admins(directory: Directory = Depends(get_directory)):
    return [a.to_json() for a in directory.list_admins()]


@router.post("/admins")
def add_admin(payload: AdminCreate, directory: Directory = Depends(get_directory)):
    return [a.to_json() for a in directory.add_admin(payload.id, payload.name)]


@router.delete("/admins/{identity}")
def remove_admin(identity: str, directory: Directory = Depends(get_directory)):
    return [a.to_json() for a in directory.remove_admin(identity)]
