from fastapi import APIRouter, Depends

from hive_api.api.schemas import IdentityCreate
from hive_api.api.settings import get_directory
from hive_api.services.directory import Directory

router = APIRouter(prefix="/api/identity-mappings", tags=["identity"])


@router.get("")
def list_identities(directory: Directory = Depends(get_directory)):
    return [m.to_json() for m in directory.list_identities()]


@router.post("")
def upsert_identity(payload: IdentityCreate, directory: Directory = Depends(get_directory)):
    return [m.to_json() for m in directory.upsert_identity(payload.id, payload.name)]


@router.delete("/{identity}")
def remove_identity(identity: str, directory: Directory = Depends(get_directory)):
    return [m.to_json() for m in directory.remove_identity(identity)]
