"""Thin HTTP client for the hive API."""

import logging
from typing import Any, Optional, Tuple

import requests

logger = logging.getLogger(__name__)


class HiveApiClient:
    def __init__(self, base_url: str, timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = requests.Session()

    def call_api(self, method: str, path: str, **kwargs) -> Tuple[bool, Any, Optional[str]]:
        """
        Returns (ok, payload, error). Transport failures come back as
        ok=False instead of raising, so kiosk views can flash them.
        """
        try:
            resp = self._session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("Hive API %s %s failed: %s", method, path, e)
            return False, None, f"Hive API unreachable: {e}"

        try:
            payload = resp.json()
        except ValueError:
            payload = {"raw": resp.text}

        if 200 <= resp.status_code < 300:
            return True, payload, None

        if isinstance(payload, dict):
            error = payload.get("detail") or payload.get("error") or payload.get("raw")
        else:
            error = str(payload)
        return False, payload, f"HTTP {resp.status_code}: {error}"

    # -------- endpoints the kiosks use --------

    def login(self, identity: str, hive_id: Optional[int], force_user: bool = False):
        return self.call_api("POST", "/api/users/login", json={
            "id": identity,
            "hiveId": hive_id,
            "forceUser": force_user,
        })

    def lookup(self, identity: str):
        return self.call_api("GET", f"/api/users/{identity}")

    def disconnect(self, identity: str):
        return self.call_api("POST", f"/api/users/{identity}/disconnect")

    def release(self, identity: str):
        return self.call_api("POST", f"/api/users/{identity}/release")

    def admin_delete(self, identity: str):
        return self.call_api("DELETE", f"/api/users/{identity}")

    def active_users(self):
        return self.call_api("GET", "/api/users")

    def stats(self):
        return self.call_api("GET", "/api/stats")

    def upsert_identity(self, identity: str, name: str):
        return self.call_api("POST", "/api/identity-mappings", json={"id": identity, "name": name})

    def reset(self):
        return self.call_api("POST", "/api/reset")

    def clear_history(self):
        return self.call_api("POST", "/api/clear-history")

    # -------- admin panel: inventory --------

    def hives(self):
        return self.call_api("GET", "/api/hives")

    def create_hive(self, name: str):
        return self.call_api("POST", "/api/hives", json={"name": name})

    def delete_hive(self, hive_id: int):
        return self.call_api("DELETE", f"/api/hives/{hive_id}")

    def boxes(self, hive_id: Optional[int] = None):
        params = {"hiveId": hive_id} if hive_id else None
        return self.call_api("GET", "/api/boxes", params=params)

    def create_box(self, hive_id: int, box_number: int, ip_address: Optional[str] = None):
        return self.call_api("POST", "/api/boxes", json={
            "hiveId": hive_id,
            "boxNumber": box_number,
            "ipAddress": ip_address or None,
        })

    def delete_box(self, box_id: int):
        return self.call_api("DELETE", f"/api/boxes/{box_id}")

    def suggest_ip(self, hive_id: int, box_number: int):
        return self.call_api("GET", f"/api/boxes/suggest-ip/{hive_id}/{box_number}")

    # -------- admin panel: directory --------

    def settings(self):
        return self.call_api("GET", "/api/settings")

    def update_settings(self, patch: dict):
        return self.call_api("POST", "/api/settings", json=patch)

    def identities(self):
        return self.call_api("GET", "/api/identity-mappings")

    def delete_identity(self, identity: str):
        return self.call_api("DELETE", f"/api/identity-mappings/{identity}")

    def admins(self):
        return self.call_api("GET", "/api/admins")

    def add_admin(self, identity: str, name: Optional[str] = None):
        return self.call_api("POST", "/api/admins", json={"id": identity, "name": name or None})

    def remove_admin(self, identity: str):
        return self.call_api("DELETE", f"/api/admins/{identity}")
