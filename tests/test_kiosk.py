import pytest

from kiosk import config
from kiosk import service
from kiosk.rotator import RotationError, RotationResult

BOX = {"id": 4, "hiveId": 1, "boxNumber": 2, "ipAddress": "10.1.1.2", "status": "occupied", "userId": "123"}


class FakeApi:
    def __init__(self):
        self.calls = []
        self.login_payload = {"kind": "allocated", "user": {"id": "123"}, "box": BOX, "name": "Dana"}
        self.lookup_payload = {"found": True, "user": {"id": "123"}, "box": BOX, "name": "Dana"}

    def login(self, identity, hive_id, force_user=False):
        self.calls.append(("login", identity, hive_id, force_user))
        return True, self.login_payload, None

    def lookup(self, identity):
        self.calls.append(("lookup", identity))
        return True, self.lookup_payload, None

    def disconnect(self, identity):
        self.calls.append(("disconnect", identity))
        return True, {"success": True, "message": "disconnected"}, None

    def release(self, identity):
        self.calls.append(("release", identity))
        return True, {"success": True, "message": "released"}, None

    def admin_delete(self, identity):
        self.calls.append(("admin_delete", identity))
        return True, {"success": True, "removed": True}, None

    def active_users(self):
        return True, [{"id": "123", "name": "Dana", "box": BOX, "connectedAt": "2026-01-01T08:00:00Z"}], None

    def stats(self):
        return True, {
            "totalUsers": 1,
            "totalBoxes": 5,
            "freeBoxes": 4,
            "occupiedBoxes": 1,
            "usersPerDay": [{"date": "2026-10-17", "count": 0}, {"date": "2026-10-18", "count": 3}],
            "boxUsage": [{"boxId": 4, "boxNumber": 2, "hiveId": 1, "currentStatus": "occupied", "usageCount": 7}],
            "userUsage": {"123": {"connects": 2, "releases": 1}},
        }, None

    def upsert_identity(self, identity, name):
        self.calls.append(("upsert_identity", identity, name))
        return True, [{"id": identity, "name": name}], None

    def reset(self):
        self.calls.append(("reset",))
        return True, {"success": True, "message": "reset done"}, None

    def clear_history(self):
        self.calls.append(("clear_history",))
        return True, {"success": True, "message": "history cleared"}, None

    def hives(self):
        return True, [{"id": 1, "name": "North"}, {"id": 2, "name": "South"}], None

    def create_hive(self, name):
        self.calls.append(("create_hive", name))
        return True, {"id": 3, "name": name}, None

    def delete_hive(self, hive_id):
        self.calls.append(("delete_hive", hive_id))
        return True, {"success": True, "boxesRemoved": 2}, None

    def boxes(self, hive_id=None):
        self.calls.append(("boxes", hive_id))
        free = {"id": 5, "hiveId": 2, "boxNumber": 1, "ipAddress": "10.1.2.1", "status": "free"}
        return True, [free, BOX] if hive_id is None else [b for b in (free, BOX) if b["hiveId"] == hive_id], None

    def create_box(self, hive_id, box_number, ip_address=None):
        self.calls.append(("create_box", hive_id, box_number, ip_address))
        return True, {"id": 6, "hiveId": hive_id, "boxNumber": box_number, "ipAddress": ip_address or "10.1.9.9"}, None

    def delete_box(self, box_id):
        self.calls.append(("delete_box", box_id))
        return True, {"success": True}, None

    def suggest_ip(self, hive_id, box_number):
        return True, {"suggestedIp": f"10.1.{hive_id}.{box_number}"}, None

    def settings(self):
        return True, {"currentHive": 1}, None

    def update_settings(self, patch):
        self.calls.append(("update_settings", patch))
        return True, patch, None

    def identities(self):
        return True, [{"id": "123", "name": "Dana"}], None

    def delete_identity(self, identity):
        self.calls.append(("delete_identity", identity))
        return True, [], None

    def admins(self):
        return True, [{"id": "999", "name": "Boss"}], None

    def add_admin(self, identity, name=None):
        self.calls.append(("add_admin", identity, name))
        return True, [], None

    def remove_admin(self, identity):
        self.calls.append(("remove_admin", identity))
        return True, [], None


class FakeRotator:
    def __init__(self, error=None):
        self.error = error
        self.addresses = []

    def rotate(self, address, cancel=None):
        self.addresses.append(address)
        if self.error:
            raise self.error
        return RotationResult(address=address, secret="fresh-secret")


@pytest.fixture
def api(monkeypatch):
    fake = FakeApi()
    monkeypatch.setattr(service, "api", fake)
    return fake


@pytest.fixture
def kiosk(api):
    service.app.config["TESTING"] = True
    with service.app.test_client() as client:
        yield client


def _page(resp):
    return resp.get_data(as_text=True)


def test_keypad_builds_tag_for_login(kiosk, api):
    kiosk.get("/box?id=3")
    for key in "12":
        kiosk.post("/box/key", data={"key": key})
    assert 'id="display">12<' in _page(kiosk.get("/box"))

    resp = kiosk.post("/box/login")
    assert api.calls[-1] == ("login", "12", 3, False)
    assert "10.1.1.2" in _page(resp)
    assert 'id="display"><' in _page(kiosk.get("/box"))


def test_unknown_kiosk_key_route(kiosk):
    assert kiosk.post("/nope/key", data={"key": "1"}).status_code == 404


def test_scanned_tag_wins_over_keypad(kiosk, api):
    kiosk.post("/box/key", data={"key": "9"})
    kiosk.post("/box/login", data={"tag": " 123 "})
    assert api.calls[-1][1] == "123"


def test_empty_login_is_not_sent(kiosk, api):
    resp = kiosk.post("/box/login")
    assert resp.status_code == 302
    assert api.calls == []


def test_no_available_box_flashes_message(kiosk, api):
    api.login_payload = {"kind": "noAvailableBox", "error": "noAvailableBox", "message": "אין תאים פנויים"}
    resp = kiosk.post("/box/login", data={"tag": "5"}, follow_redirects=True)
    assert "אין תאים פנויים" in _page(resp)


def test_admin_choice_then_admin_panel(kiosk, api):
    api.login_payload = {"kind": "admin", "isAdmin": True, "id": "999"}
    resp = kiosk.post("/box/login", data={"tag": "999"})
    assert "box/admin-panel" in _page(resp)

    resp = kiosk.post("/box/admin-panel", follow_redirects=True)
    page = _page(resp)
    assert "Dana" in page
    assert "10.1.1.2" in page

    kiosk.post("/box/admin/users/123/delete")
    kiosk.post("/box/admin/identities", data={"id": "55", "name": "Yael"})
    kiosk.post("/box/admin/reset")
    kiosk.post("/box/admin/clear-history")
    assert [c[0] for c in api.calls[1:]] == ["admin_delete", "upsert_identity", "reset", "clear_history"]


def test_admin_choice_login_as_user(kiosk, api):
    api.login_payload = {"kind": "admin", "isAdmin": True, "id": "999"}
    kiosk.post("/box/login", data={"tag": "999"})
    api.login_payload = {"kind": "allocated", "user": {"id": "999"}, "box": BOX, "name": None}
    resp = kiosk.post("/box/login-as-user")
    assert api.calls[-1] == ("login", "999", None, True)
    assert "boxNumber" in _page(resp)


def test_admin_views_need_admin_session(kiosk, api):
    resp = kiosk.get("/box/admin")
    assert resp.status_code == 302
    kiosk.post("/box/admin/reset")
    assert api.calls == []


def test_screen_lookup_not_found(kiosk, api):
    api.lookup_payload = {"found": False}
    resp = kiosk.post("/screen/lookup", data={"tag": "77"})
    assert "77" in _page(resp)
    assert kiosk.post("/screen/release").status_code == 302
    assert ("release", "77") not in api.calls


def test_screen_disconnect_and_release(kiosk, api):
    kiosk.post("/screen/lookup", data={"tag": "123"})
    kiosk.post("/screen/disconnect")
    assert api.calls[-1] == ("disconnect", "123")

    kiosk.post("/screen/lookup", data={"tag": "123"})
    resp = kiosk.post("/screen/release", follow_redirects=True)
    assert api.calls[-1] == ("release", "123")
    assert "released" in _page(resp)


def test_screen_connect_without_rotation(kiosk, api, monkeypatch):
    monkeypatch.setattr(config, "ROTATE_CREDENTIALS", False)
    kiosk.post("/screen/lookup", data={"tag": "123"})
    resp = kiosk.post("/screen/connect")
    assert resp.status_code == 302
    assert resp.headers["Location"] == "http://10.1.1.2"


def test_screen_connect_with_rotation_posts_secret(kiosk, api, monkeypatch):
    rotator = FakeRotator()
    monkeypatch.setattr(config, "ROTATE_CREDENTIALS", True)
    monkeypatch.setattr(service, "rotator", rotator)

    kiosk.post("/screen/lookup", data={"tag": "123"})
    page = _page(kiosk.post("/screen/connect"))
    assert rotator.addresses == ["10.1.1.2"]
    assert 'value="fresh-secret"' in page
    assert "https://10.1.1.2/api/auth/login" in page


def test_screen_connect_rotation_failure(kiosk, api, monkeypatch):
    error = RotationError("10.1.1.2", "restart-service", "exit 1", credential_changed=True)
    monkeypatch.setattr(config, "ROTATE_CREDENTIALS", True)
    monkeypatch.setattr(service, "rotator", FakeRotator(error=error))

    kiosk.post("/screen/lookup", data={"tag": "123"})
    resp = kiosk.post("/screen/connect", follow_redirects=True)
    page = _page(resp)
    assert "restart-service" in page
    assert "fresh-secret" not in page


def _enter_admin(kiosk, api):
    api.login_payload = {"kind": "admin", "isAdmin": True, "id": "999"}
    kiosk.post("/box/login", data={"tag": "999"})
    kiosk.post("/box/admin-panel")
    api.calls.clear()


@pytest.mark.parametrize("path", [
    "/box/admin/boxes",
    "/box/admin/boxes/4",
    "/box/admin/hives",
    "/box/admin/identities",
    "/box/admin/admins",
    "/box/admin/stats",
])
def test_admin_pages_redirect_without_admin(kiosk, path):
    resp = kiosk.get(path)
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/box")


def test_admin_boxes_filter_suggest_and_add(kiosk, api):
    _enter_admin(kiosk, api)

    page = _page(kiosk.get("/box/admin/boxes?hiveId=1"))
    assert api.calls[-1] == ("boxes", 1)
    assert "10.1.1.2" in page and "10.1.2.1" not in page

    page = _page(kiosk.get("/box/admin/boxes?newHive=2&newNumber=7"))
    assert 'value="10.1.2.7"' in page

    kiosk.post("/box/admin/boxes", data={"hive_id": "2", "box_number": "7", "ip_address": ""})
    assert api.calls[-1] == ("create_box", 2, 7, "")

    resp = kiosk.post("/box/admin/boxes", data={"hive_id": "2", "box_number": "x"})
    assert resp.status_code == 302
    assert len([c for c in api.calls if c[0] == "create_box"]) == 1


def test_admin_box_details_and_delete(kiosk, api):
    _enter_admin(kiosk, api)
    page = _page(kiosk.get("/box/admin/boxes/4"))
    assert "10.1.1.2" in page
    assert "123" in page

    assert kiosk.get("/box/admin/boxes/77").status_code == 302

    kiosk.post("/box/admin/boxes/4/delete")
    assert api.calls[-1] == ("delete_box", 4)


def test_admin_hives_add_delete_and_select(kiosk, api):
    _enter_admin(kiosk, api)
    page = _page(kiosk.get("/box/admin/hives"))
    assert "North" in page and "South" in page

    kiosk.post("/box/admin/hives", data={"name": "East"})
    assert api.calls[-1] == ("create_hive", "East")

    kiosk.post("/box/admin/hives/2/delete")
    assert api.calls[-1] == ("delete_hive", 2)

    resp = kiosk.post("/box/admin/hives/2/select")
    assert resp.headers["Location"].endswith("/box?id=2")
    with kiosk.session_transaction() as sess:
        assert sess["hive_id"] == 2


def test_admin_changes_current_hive(kiosk, api):
    _enter_admin(kiosk, api)
    resp = kiosk.post("/box/admin/settings", data={"current_hive": "2"})
    assert api.calls[-1] == ("update_settings", {"currentHive": 2})
    assert resp.headers["Location"].endswith("/box?id=2")

    kiosk.post("/box/admin/settings", data={"current_hive": ""})
    assert len([c for c in api.calls if c[0] == "update_settings"]) == 1


def test_admin_identities_and_admins(kiosk, api):
    _enter_admin(kiosk, api)
    assert "Dana" in _page(kiosk.get("/box/admin/identities"))
    kiosk.post("/box/admin/identities/123/delete")
    assert api.calls[-1] == ("delete_identity", "123")

    assert "Boss" in _page(kiosk.get("/box/admin/admins"))
    kiosk.post("/box/admin/admins", data={"id": "42", "name": "Ori"})
    assert api.calls[-1] == ("add_admin", "42", "Ori")
    kiosk.post("/box/admin/admins/42/delete")
    assert api.calls[-1] == ("remove_admin", "42")


def test_admin_stats_tables(kiosk, api):
    _enter_admin(kiosk, api)
    page = _page(kiosk.get("/box/admin/stats"))
    assert "2026-10-18" in page
    assert "<td>7</td>" in page
    assert 'id="totalUsers">1<' in page
