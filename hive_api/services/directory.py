"""Admins, identity display names and process-wide settings."""

import logging
from typing import Any, Dict, List, Optional

from hive_api.models import Admin, IdentityName, Settings, normalize_id
from hive_api.store import DocumentStore

logger = logging.getLogger(__name__)


class Directory:
    def __init__(self, store: DocumentStore):
        self.store = store

    # -------- admins --------

    def list_admins(self) -> List[Admin]:
        return self.store.load().admins

    def is_admin(self, identity) -> bool:
        return self.store.load().is_admin(normalize_id(identity))

    def add_admin(self, identity, name: Optional[str] = None) -> List[Admin]:
        identity = normalize_id(identity)
        with self.store.transaction() as db:
            if not db.is_admin(identity):
                db.admins.append(Admin(id=identity, name=name))
                logger.info("Admin %s added", identity)
            admins = db.admins
        return admins

    def remove_admin(self, identity) -> List[Admin]:
        identity = normalize_id(identity)
        with self.store.transaction() as db:
            db.admins = [a for a in db.admins if a.id != identity]
            admins = db.admins
        return admins

    # -------- identity names --------

    def list_identities(self) -> List[IdentityName]:
        return self.store.load().identity_mappings

    def upsert_identity(self, identity, name: str) -> List[IdentityName]:
        identity = normalize_id(identity)
        with self.store.transaction() as db:
            entry = next((m for m in db.identity_mappings if m.id == identity), None)
            if entry:
                entry.name = name
            else:
                db.identity_mappings.append(IdentityName(id=identity, name=name))
            mappings = db.identity_mappings
        return mappings

    def remove_identity(self, identity) -> List[IdentityName]:
        identity = normalize_id(identity)
        with self.store.transaction() as db:
            db.identity_mappings = [m for m in db.identity_mappings if m.id != identity]
            mappings = db.identity_mappings
        return mappings

    # -------- settings --------

    def get_settings(self) -> Settings:
        return self.store.load().settings

    def update_settings(self, patch: Dict[str, Any]) -> Settings:
        """Shallow merge; unknown keys are kept."""
        with self.store.transaction() as db:
            merged = {**db.settings.to_json(), **patch}
            db.settings = Settings.model_validate(merged)
            settings = db.settings
        logger.info("Settings updated: %s", sorted(patch))
        return settings
