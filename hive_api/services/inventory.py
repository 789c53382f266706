"""
Hive and box management.

Plain CRUD plus the suggested-address rule. Deleting a hive or a box also
drops the mappings that pointed at the removed boxes.
"""

import logging
from typing import Any, Dict, List, Optional

from hive_api.config import IP_PREFIX
from hive_api.models import Box, BoxStatus, Hive, next_id
from hive_api.store import DocumentStore

logger = logging.getLogger(__name__)

# status/occupant belong to the allocator
_LOCKED_BOX_FIELDS = {"id", "status", "userId", "occupant_id"}


class BoxNotFound(Exception):
    def __init__(self, box_id: int):
        super().__init__(f"Box {box_id} not found")
        self.box_id = box_id


def suggest_ip(hive_id: int, box_number: int, prefix: str = IP_PREFIX) -> str:
    """10.1.<hive>.<box>: a convenience default, never checked for collisions."""
    return f"{prefix}.{int(hive_id)}.{int(box_number)}"


class Inventory:
    def __init__(self, store: DocumentStore):
        self.store = store

    # ========================================================================
    # HIVES
    # ========================================================================

    def list_hives(self) -> List[Hive]:
        return self.store.load().hives

    def create_hive(self, name: str) -> Hive:
        with self.store.transaction() as db:
            hive = Hive(id=next_id(db.hives), name=name)
            db.hives.append(hive)
        logger.info("Hive %s created (%s)", hive.id, name)
        return hive

    def delete_hive(self, hive_id: int) -> int:
        """Delete a hive with its boxes and their mappings. Returns boxes removed."""
        with self.store.transaction() as db:
            doomed = {b.id for b in db.boxes if b.hive_id == hive_id}
            db.hives = [h for h in db.hives if h.id != hive_id]
            db.boxes = [b for b in db.boxes if b.hive_id != hive_id]
            db.users = [u for u in db.users if u.box_id not in doomed]
        logger.info("Hive %s deleted with %d boxes", hive_id, len(doomed))
        return len(doomed)

    # ========================================================================
    # BOXES
    # ========================================================================

    def list_boxes(self, hive_id: Optional[int] = None) -> List[Box]:
        boxes = self.store.load().boxes
        if hive_id:
            return [b for b in boxes if b.hive_id == hive_id]
        return boxes

    def create_box(self, hive_id: int, box_number: int, ip_address: Optional[str] = None) -> Box:
        with self.store.transaction() as db:
            box = Box(
                id=next_id(db.boxes),
                hive_id=hive_id,
                box_number=box_number,
                ip_address=ip_address or suggest_ip(hive_id, box_number),
                status=BoxStatus.FREE,
            )
            db.boxes.append(box)
        logger.info("Box %s created (#%s in hive %s, %s)", box.id, box_number, hive_id, box.ip_address)
        return box

    def update_box(self, box_id: int, patch: Dict[str, Any]) -> Box:
        changes = {k: v for k, v in patch.items() if k not in _LOCKED_BOX_FIELDS}
        with self.store.transaction() as db:
            index = next((i for i, b in enumerate(db.boxes) if b.id == box_id), None)
            if index is None:
                raise BoxNotFound(box_id)
            merged = {**db.boxes[index].to_json(), **changes}
            box = Box.model_validate(merged)
            db.boxes[index] = box
            # an occupied box carries its mapping along when it moves hives
            for mapping in db.users:
                if mapping.box_id == box.id:
                    mapping.hive_id = box.hive_id
        return box

    def delete_box(self, box_id: int) -> None:
        with self.store.transaction() as db:
            db.boxes = [b for b in db.boxes if b.id != box_id]
            db.users = [u for u in db.users if u.box_id != box_id]
        logger.info("Box %s deleted", box_id)
