from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from hive_api.database import get_store
from hive_api.services.directory import Directory
from hive_api.store import DocumentStore

router = APIRouter(prefix="/api", tags=["settings"])


def get_directory(store: DocumentStore = Depends(get_store)) -> Directory:
    return Directory(store)


@router.get("/settings")
def read_settings(directory: Directory = Depends(get_directory)):
    return directory.get_settings().to_json()


@router.post("/settings")
def update_settings(patch: Dict[str, Any] = Body(...), directory: Directory = Depends(get_directory)):
    try:
        return directory.update_settings(patch).to_json()
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid settings: {e.error_count()} error(s)")
