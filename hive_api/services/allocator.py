"""
Box allocation: who gets which box.

login -> admin choice, existing mapping, or a newly allocated free box.
disconnect only logs; release and admin delete free the box.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from hive_api.models import (
    Box,
    Database,
    Mapping,
    UsageAction,
    UsageEvent,
    normalize_id,
)
from hive_api.store import DocumentStore

logger = logging.getLogger(__name__)


class MappingNotFound(Exception):
    """No active mapping for the identity"""

    def __init__(self, identity: str):
        super().__init__(f"No active mapping for '{identity}'")
        self.identity = identity


# ============================================================================
# LOGIN RESULTS
# ============================================================================

@dataclass
class AdminChoice:
    """Identity is an admin; caller decides between admin view and a box"""
    id: str


@dataclass
class Allocation:
    mapping: Mapping
    box: Optional[Box]
    name: Optional[str]
    existing: bool = False


@dataclass
class NoAvailableBox:
    hive_id: int


LoginResult = Union[AdminChoice, Allocation, NoAvailableBox]


def _require_identity(raw) -> str:
    identity = normalize_id(raw) if raw is not None else ""
    if not identity:
        raise ValueError("identity is required")
    return identity


class Allocator:
    """
    Owns the occupancy rules.

    Every operation runs inside a single store transaction, so the
    "occupied iff exactly one mapping points at it" rule holds even with
    concurrent callers.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def _allocation(self, db: Database, mapping: Mapping, existing: bool) -> Allocation:
        return Allocation(
            mapping=mapping,
            box=db.find_box(mapping.box_id),
            name=db.display_name(mapping.id),
            existing=existing,
        )

    # ========================================================================
    # LOGIN
    # ========================================================================

    def login(self, identity, hive_id: Optional[int] = None, force_user: bool = False) -> LoginResult:
        """
        Steps:
        1. Normalize identity
        2. Admins get a choice unless force_user
        3. Existing mapping is returned as is
        4. First free box in the hive (store order), else NoAvailableBox
        5. Map identity to the box, mark it occupied, log a connect event
        """
        identity = _require_identity(identity)

        with self.store.transaction() as db:
            if not force_user and db.is_admin(identity):
                logger.info("Admin %s logged in, offering choice", identity)
                return AdminChoice(id=identity)

            existing = db.find_mapping(identity)
            if existing:
                return self._allocation(db, existing, existing=True)

            target_hive = hive_id or db.settings.current_hive
            box = next((b for b in db.boxes if b.hive_id == target_hive and b.is_free), None)
            if box is None:
                logger.warning("No free box in hive %s for %s", target_hive, identity)
                return NoAvailableBox(hive_id=target_hive)

            mapping = Mapping(id=identity, box_id=box.id, hive_id=target_hive)
            db.users.append(mapping)
            box.occupy(identity)
            db.log_usage(identity, box.id, UsageAction.CONNECT)

            logger.info("Allocated box %s (#%s, hive %s) to %s", box.id, box.box_number, target_hive, identity)
            return self._allocation(db, mapping, existing=False)

    def lookup(self, identity) -> Optional[Allocation]:
        identity = _require_identity(identity)
        db = self.store.load()
        mapping = db.find_mapping(identity)
        if mapping is None:
            return None
        return self._allocation(db, mapping, existing=True)

    def list_active(self) -> List[Allocation]:
        db = self.store.load()
        return [self._allocation(db, m, existing=True) for m in db.users]

    # ========================================================================
    # LOGOUT PATHS
    # ========================================================================

    def disconnect(self, identity) -> UsageEvent:
        """End the kiosk session only; the box stays reserved."""
        identity = _require_identity(identity)
        with self.store.transaction() as db:
            event = db.log_usage(identity, None, UsageAction.DISCONNECT_SESSION)
        logger.info("Session disconnect for %s", identity)
        return event

    def _free(self, db: Database, identity: str, action: UsageAction) -> Optional[Mapping]:
        mapping = db.find_mapping(identity)
        if mapping is None:
            return None
        box = db.find_box(mapping.box_id)
        if box:
            box.free()
        db.users = [u for u in db.users if u.id != identity]
        db.log_usage(identity, mapping.box_id, action)
        return mapping

    def release(self, identity) -> Mapping:
        identity = _require_identity(identity)
        with self.store.transaction() as db:
            mapping = self._free(db, identity, UsageAction.RELEASE)
            if mapping is None:
                raise MappingNotFound(identity)
        logger.info("Box %s released by %s", mapping.box_id, identity)
        return mapping

    def admin_delete(self, identity) -> Optional[Mapping]:
        """Release on behalf of an admin. Unknown identities are a no-op."""
        identity = _require_identity(identity)
        with self.store.transaction() as db:
            mapping = self._free(db, identity, UsageAction.ADMIN_DELETE)
        if mapping:
            logger.info("Admin removed %s from box %s", identity, mapping.box_id)
        return mapping

    # ========================================================================
    # BULK
    # ========================================================================

    def reset(self) -> int:
        """Free every box and drop all mappings. Returns the mapping count dropped."""
        with self.store.transaction() as db:
            for box in db.boxes:
                box.free()
            dropped = len(db.users)
            db.users = []
        logger.warning("System reset: %d mappings dropped", dropped)
        return dropped

    def clear_history(self) -> int:
        with self.store.transaction() as db:
            cleared = len(db.usage_stats)
            db.usage_stats = []
        logger.info("Usage history cleared (%d events)", cleared)
        return cleared
