from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import enum

from pydantic import BaseModel, ConfigDict, Field, model_serializer

# ============================================================================
# ENUM DEFINITIONS
# ============================================================================

class BoxStatus(str, enum.Enum):
    """Box occupancy state (only the allocator changes it)"""
    FREE = "free"
    OCCUPIED = "occupied"


class UsageAction(str, enum.Enum):
    """Usage log actions"""
    CONNECT = "connect"
    DISCONNECT_SESSION = "disconnect-session"
    RELEASE = "release"
    ADMIN_DELETE = "admin-delete"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_id(raw: Any) -> str:
    """Badge ids arrive as numbers or padded strings; compare them trimmed."""
    return str(raw).strip()


# ============================================================================
# DOCUMENT MODELS
# ============================================================================

class DocumentModel(BaseModel):
    """Base for everything stored in the JSON document (camelCase on disk)"""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Hive(DocumentModel):
    """A named group of boxes"""
    id: int
    name: str


class Box(DocumentModel):
    """One KVM-connected machine inside a hive"""
    id: int
    hive_id: int = Field(alias="hiveId")
    box_number: int = Field(alias="boxNumber")
    ip_address: str = Field(default="", alias="ipAddress")
    status: BoxStatus = BoxStatus.FREE
    occupant_id: Optional[str] = Field(default=None, alias="userId")

    @model_serializer(mode="wrap")
    def drop_empty_occupant(self, handler):
        data = handler(self)
        # a free box carries no occupant key at all
        if data.get("userId", "") is None:
            data.pop("userId")
        if data.get("occupant_id", "") is None:
            data.pop("occupant_id")
        return data

    @property
    def is_free(self) -> bool:
        return self.status == BoxStatus.FREE

    def occupy(self, identity: str) -> None:
        self.status = BoxStatus.OCCUPIED
        self.occupant_id = identity

    def free(self) -> None:
        self.status = BoxStatus.FREE
        self.occupant_id = None


class Mapping(DocumentModel):
    """Active user: identity -> box"""
    id: str
    box_id: int = Field(alias="boxId")
    hive_id: int = Field(alias="hiveId")
    connected_at: datetime = Field(default_factory=utcnow, alias="connectedAt")


class IdentityName(DocumentModel):
    id: str
    name: str


class Admin(DocumentModel):
    id: str
    name: Optional[str] = None


class UsageEvent(DocumentModel):
    """Append-only usage log entry"""
    user_id: str = Field(alias="userId")
    box_id: Optional[int] = Field(default=None, alias="boxId")
    action: UsageAction
    timestamp: datetime = Field(default_factory=utcnow)


class Settings(DocumentModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    current_hive: int = Field(default=1, alias="currentHive")


class Database(DocumentModel):
    """The whole persisted document"""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True, extra="ignore")

    settings: Settings = Field(default_factory=Settings)
    admins: List[Admin] = Field(default_factory=list)
    hives: List[Hive] = Field(default_factory=list)
    boxes: List[Box] = Field(default_factory=list)
    users: List[Mapping] = Field(default_factory=list)
    identity_mappings: List[IdentityName] = Field(default_factory=list, alias="identityMappings")
    usage_stats: List[UsageEvent] = Field(default_factory=list, alias="usageStats")

    # ------------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------------

    def find_box(self, box_id: int) -> Optional[Box]:
        return next((b for b in self.boxes if b.id == box_id), None)

    def find_mapping(self, identity: str) -> Optional[Mapping]:
        return next((u for u in self.users if u.id == identity), None)

    def display_name(self, identity: str) -> Optional[str]:
        entry = next((m for m in self.identity_mappings if m.id == identity), None)
        return entry.name if entry else None

    def is_admin(self, identity: str) -> bool:
        return any(a.id == identity for a in self.admins)

    def log_usage(self, identity: str, box_id: Optional[int], action: UsageAction) -> UsageEvent:
        event = UsageEvent(user_id=identity, box_id=box_id, action=action)
        self.usage_stats.append(event)
        return event


def next_id(items) -> int:
    """Ids are max(existing) + 1, starting at 1."""
    return max((item.id for item in items), default=0) + 1
