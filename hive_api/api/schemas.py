from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ApiModel(BaseModel):
    """Request bodies: camelCase keys, badge ids may arrive as numbers"""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


def _loose_int(value: Any) -> Optional[int]:
    # kiosks send hiveId as whatever the URL gave them; junk means "use the default"
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class LoginRequest(ApiModel):
    id: str = Field(min_length=1)
    hive_id: Optional[int] = Field(default=None, alias="hiveId")
    force_user: bool = Field(default=False, alias="forceUser")

    @field_validator("hive_id", mode="before")
    @classmethod
    def parse_hive(cls, value):
        return _loose_int(value)


class AdminCreate(ApiModel):
    id: str = Field(min_length=1)
    name: Optional[str] = None


class IdentityCreate(ApiModel):
    id: str = Field(min_length=1)
    name: str


class HiveCreate(ApiModel):
    name: str = Field(min_length=1)


class BoxCreate(ApiModel):
    hive_id: int = Field(alias="hiveId", ge=1)
    box_number: int = Field(alias="boxNumber", ge=0)
    ip_address: Optional[str] = Field(default=None, alias="ipAddress")
