"""
Kiosk service: the two badge-entry front ends.

Hive kiosk (/box?id=<hive>)
- keypad -> login -> allocated/existing box, or admin choice
- admin view: active users, boxes, hives and the current hive, badge names,
  admins, usage statistics, reset and clear history

Screen kiosk (/screen)
- keypad -> lookup -> disconnect (keep box) / release (free box) / connect
- connect optionally rotates the box credential and posts it to the box login
"""
import logging
from functools import wraps

from flask import Flask, flash, redirect, render_template, request, session, url_for

from kiosk import config
from kiosk.client import HiveApiClient
from kiosk.keypad import KeypadBuffer
from kiosk.rotator import CredentialRotator, RotationError

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = config.SECRET_KEY

api = HiveApiClient(config.API_BASE_URL)
rotator = CredentialRotator()

KIOSKS = ("box", "screen")


@app.context_processor
def kiosk_defaults():
    return {"idle_seconds": config.IDLE_SECONDS}


# ============================================================================
# KEYPAD (shared)
# ============================================================================

def _keypad(kind: str) -> KeypadBuffer:
    return KeypadBuffer.from_session(session.get(f"keypad_{kind}"), idle_seconds=config.IDLE_SECONDS)


def _store_keypad(kind: str, keypad: KeypadBuffer) -> None:
    session[f"keypad_{kind}"] = keypad.to_session()


def _submitted_tag(kind: str) -> str:
    """A scanner posts the whole tag at once; the on-screen keypad builds it key by key."""
    keypad = _keypad(kind)
    typed = keypad.take()
    _store_keypad(kind, keypad)
    return (request.form.get("tag") or typed).strip()


def _render_keypad(kind: str, **context):
    keypad = _keypad(kind)
    display = keypad.value
    _store_keypad(kind, keypad)
    return render_template("keypad.html", kind=kind, display=display, **context)


@app.route("/<kind>/key", methods=["POST"])
def keypad_press(kind):
    if kind not in KIOSKS:
        return "Unknown kiosk", 404
    keypad = _keypad(kind)
    try:
        keypad.press(request.form.get("key", ""))
    except ValueError:
        flash("מקש לא חוקי", "warning")
    _store_keypad(kind, keypad)
    if kind == "box":
        return redirect(url_for("box_index", id=session.get("hive_id")))
    return redirect(url_for("screen_index"))


@app.route("/")
def index():
    return render_template("index.html", hive_id=session.get("hive_id"))


# ============================================================================
# HIVE KIOSK
# ============================================================================

def _hive_id():
    return session.get("hive_id")


@app.route("/box")
def box_index():
    raw = request.args.get("id")
    if raw:
        try:
            session["hive_id"] = int(raw)
        except ValueError:
            flash(f"Invalid hive id: {raw}", "danger")
    return _render_keypad("box", hive_id=_hive_id())


def _show_login_result(payload):
    kind = payload.get("kind")
    if kind == "admin":
        session["pending_admin"] = payload.get("id")
        return render_template("admin_choice.html", identity=payload.get("id"))
    if kind == "noAvailableBox":
        flash(payload.get("message", "No free box"), "danger")
        return redirect(url_for("box_index"))
    return render_template(
        "box_result.html",
        existing=kind == "existing",
        identity=payload["user"]["id"],
        box=payload.get("box") or {},
        name=payload.get("name"),
    )


@app.route("/box/login", methods=["POST"])
def box_login():
    tag = _submitted_tag("box")
    if not tag:
        flash("נא להזין מספר זיהוי", "warning")
        return redirect(url_for("box_index"))

    ok, payload, error = api.login(tag, _hive_id())
    if not ok:
        flash(f"שגיאה בהתחברות: {error}", "danger")
        return redirect(url_for("box_index"))
    return _show_login_result(payload)


@app.route("/box/login-as-user", methods=["POST"])
def box_login_as_user():
    identity = session.pop("pending_admin", None)
    if not identity:
        return redirect(url_for("box_index"))
    ok, payload, error = api.login(identity, _hive_id(), force_user=True)
    if not ok:
        flash(f"שגיאה בהתחברות: {error}", "danger")
        return redirect(url_for("box_index"))
    return _show_login_result(payload)


@app.route("/box/release/<identity>", methods=["POST"])
def box_release(identity):
    ok, payload, error = api.release(identity)
    if ok:
        flash(payload.get("message", "Released"), "success")
    else:
        flash(f"שגיאה בהתנתקות: {error}", "danger")
    return redirect(url_for("box_index"))


# -------- admin view --------

@app.route("/box/admin-panel", methods=["POST"])
def box_enter_admin():
    identity = session.pop("pending_admin", None)
    if not identity:
        return redirect(url_for("box_index"))
    session["admin_id"] = identity
    return redirect(url_for("box_admin"))


def admin_required(view):
    """Admin pages need an admin badge confirmed on the choice page."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not session.get("admin_id"):
            flash("Admin login required", "warning")
            return redirect(url_for("box_index"))
        return view(*args, **kwargs)
    return wrapper


def _fetch(label, result, default):
    ok, payload, error = result
    if not ok:
        flash(f"Error fetching {label}: {error}", "danger")
        return default
    return payload


def _flash_outcome(result, success_message, failure_prefix) -> bool:
    ok, _, error = result
    if ok:
        flash(success_message, "success")
    else:
        flash(f"{failure_prefix}: {error}", "danger")
    return ok


@app.route("/box/admin")
@admin_required
def box_admin():
    users = _fetch("users", api.active_users(), [])
    stats = _fetch("stats", api.stats(), {})
    return render_template("admin.html", users=users, stats=stats, hive_id=_hive_id())


@app.route("/box/admin/users/<identity>/delete", methods=["POST"])
@admin_required
def box_admin_delete(identity):
    _flash_outcome(api.admin_delete(identity), f"User {identity} removed", "Error removing user")
    return redirect(url_for("box_admin"))


@app.route("/box/admin/reset", methods=["POST"])
@admin_required
def box_admin_reset():
    ok, payload, error = api.reset()
    flash(payload.get("message") if ok else f"Error: {error}", "success" if ok else "danger")
    return redirect(url_for("box_admin"))


@app.route("/box/admin/clear-history", methods=["POST"])
@admin_required
def box_admin_clear_history():
    ok, payload, error = api.clear_history()
    flash(payload.get("message") if ok else f"Error: {error}", "success" if ok else "danger")
    return redirect(url_for("box_admin"))


@app.route("/box/admin/logout", methods=["POST"])
def box_admin_logout():
    session.pop("admin_id", None)
    return redirect(url_for("box_index"))


# -------- admin: boxes --------

@app.route("/box/admin/boxes")
@admin_required
def box_admin_boxes():
    hives = _fetch("hives", api.hives(), [])
    hive_filter = request.args.get("hiveId", type=int)
    boxes = _fetch("boxes", api.boxes(hive_filter), [])
    if request.args.get("sort"):
        boxes = sorted(boxes, key=lambda b: b.get("boxNumber", 0))

    # "suggest" on the add form reloads the page with the new box prefilled
    new_hive = request.args.get("newHive", type=int)
    new_number = request.args.get("newNumber", type=int)
    suggested = ""
    if new_hive and new_number is not None:
        suggested = _fetch("suggested IP", api.suggest_ip(new_hive, new_number), {}).get("suggestedIp", "")

    return render_template(
        "admin_boxes.html",
        hives=hives,
        hive_names={h["id"]: h["name"] for h in hives},
        boxes=boxes,
        hive_filter=hive_filter,
        sort=bool(request.args.get("sort")),
        new_hive=new_hive or _hive_id(),
        new_number=new_number,
        suggested_ip=suggested,
    )


@app.route("/box/admin/boxes", methods=["POST"])
@admin_required
def box_admin_add_box():
    hive_id = request.form.get("hive_id", type=int)
    box_number = request.form.get("box_number", type=int)
    ip_address = (request.form.get("ip_address") or "").strip()
    if not hive_id or box_number is None:
        flash("All fields required", "danger")
        return redirect(url_for("box_admin_boxes"))
    ok, box, error = api.create_box(hive_id, box_number, ip_address)
    if ok:
        flash(f"Box {box_number} added ({box.get('ipAddress')})", "success")
    else:
        flash(f"Error adding box: {error}", "danger")
    return redirect(url_for("box_admin_boxes", hiveId=hive_id))


@app.route("/box/admin/boxes/<int:box_id>")
@admin_required
def box_admin_box_details(box_id):
    boxes = _fetch("boxes", api.boxes(), [])
    box = next((b for b in boxes if b.get("id") == box_id), None)
    if box is None:
        flash(f"Box {box_id} not found", "warning")
        return redirect(url_for("box_admin_boxes"))
    return render_template("admin_box.html", box=box)


@app.route("/box/admin/boxes/<int:box_id>/delete", methods=["POST"])
@admin_required
def box_admin_delete_box(box_id):
    _flash_outcome(api.delete_box(box_id), "התא נמחק בהצלחה", "Error deleting box")
    return redirect(url_for("box_admin_boxes"))


# -------- admin: hives and current hive --------

@app.route("/box/admin/hives")
@admin_required
def box_admin_hives():
    hives = _fetch("hives", api.hives(), [])
    settings = _fetch("settings", api.settings(), {})
    return render_template(
        "admin_hives.html",
        hives=hives,
        current_hive=settings.get("currentHive"),
        hive_id=_hive_id(),
    )


@app.route("/box/admin/hives", methods=["POST"])
@admin_required
def box_admin_add_hive():
    name = (request.form.get("name") or "").strip()
    if not name:
        flash("All fields required", "danger")
    else:
        _flash_outcome(api.create_hive(name), f"Hive '{name}' added", "Error adding hive")
    return redirect(url_for("box_admin_hives"))


@app.route("/box/admin/hives/<int:hive_id>/delete", methods=["POST"])
@admin_required
def box_admin_delete_hive(hive_id):
    ok, payload, error = api.delete_hive(hive_id)
    if ok:
        flash(f"הכוורת נמחקה בהצלחה ({payload.get('boxesRemoved', 0)} boxes removed)", "success")
        if _hive_id() == hive_id:
            session.pop("hive_id", None)
    else:
        flash(f"Error deleting hive: {error}", "danger")
    return redirect(url_for("box_admin_hives"))


@app.route("/box/admin/hives/<int:hive_id>/select", methods=["POST"])
@admin_required
def box_admin_select_hive(hive_id):
    """Switch this kiosk to another hive."""
    session["hive_id"] = hive_id
    return redirect(url_for("box_index", id=hive_id))


@app.route("/box/admin/settings", methods=["POST"])
@admin_required
def box_admin_current_hive():
    """Change the server-wide default hive and move this kiosk to it."""
    hive_id = request.form.get("current_hive", type=int)
    if not hive_id:
        flash("Choose a hive", "danger")
        return redirect(url_for("box_admin_hives"))
    if not _flash_outcome(api.update_settings({"currentHive": hive_id}),
                          f"Current hive set to {hive_id}", "Error saving settings"):
        return redirect(url_for("box_admin_hives"))
    session["hive_id"] = hive_id
    return redirect(url_for("box_index", id=hive_id))


# -------- admin: badge names and admins --------

@app.route("/box/admin/identities")
@admin_required
def box_admin_identities():
    identities = _fetch("names", api.identities(), [])
    return render_template("admin_identities.html", identities=identities)


@app.route("/box/admin/identities", methods=["POST"])
@admin_required
def box_admin_identity():
    identity = (request.form.get("id") or "").strip()
    name = (request.form.get("name") or "").strip()
    if not identity or not name:
        flash("All fields required", "danger")
    else:
        _flash_outcome(api.upsert_identity(identity, name), f"Name saved for {identity}", "Error saving name")
    return redirect(url_for("box_admin_identities"))


@app.route("/box/admin/identities/<identity>/delete", methods=["POST"])
@admin_required
def box_admin_delete_identity(identity):
    _flash_outcome(api.delete_identity(identity), f"Name removed for {identity}", "Error removing name")
    return redirect(url_for("box_admin_identities"))


@app.route("/box/admin/admins")
@admin_required
def box_admin_admins():
    admins = _fetch("admins", api.admins(), [])
    return render_template("admin_admins.html", admins=admins, admin_id=session.get("admin_id"))


@app.route("/box/admin/admins", methods=["POST"])
@admin_required
def box_admin_add_admin():
    identity = (request.form.get("id") or "").strip()
    name = (request.form.get("name") or "").strip()
    if not identity:
        flash("All fields required", "danger")
    else:
        _flash_outcome(api.add_admin(identity, name), f"Admin {identity} added", "Error adding admin")
    return redirect(url_for("box_admin_admins"))


@app.route("/box/admin/admins/<identity>/delete", methods=["POST"])
@admin_required
def box_admin_remove_admin(identity):
    _flash_outcome(api.remove_admin(identity), f"Admin {identity} removed", "Error removing admin")
    return redirect(url_for("box_admin_admins"))


# -------- admin: statistics --------

@app.route("/box/admin/stats")
@admin_required
def box_admin_stats():
    stats = _fetch("stats", api.stats(), {})
    return render_template("admin_stats.html", stats=stats)


# ============================================================================
# SCREEN KIOSK
# ============================================================================

@app.route("/screen")
def screen_index():
    return _render_keypad("screen")


@app.route("/screen/lookup", methods=["POST"])
def screen_lookup():
    tag = _submitted_tag("screen")
    if not tag:
        flash("נא להזין מספר זיהוי", "warning")
        return redirect(url_for("screen_index"))

    ok, payload, error = api.lookup(tag)
    if not ok:
        flash(f"שגיאה בבדיקת מזהה: {error}", "danger")
        return redirect(url_for("screen_index"))
    if not payload.get("found"):
        session.pop("screen_user", None)
        return render_template("screen_not_found.html", identity=tag)

    session["screen_user"] = tag
    return render_template(
        "screen_connected.html",
        identity=tag,
        box=payload.get("box") or {},
        name=payload.get("name"),
        rotate=config.ROTATE_CREDENTIALS,
    )


def _screen_user():
    return session.get("screen_user")


@app.route("/screen/disconnect", methods=["POST"])
def screen_disconnect():
    identity = session.pop("screen_user", None)
    if not identity:
        return redirect(url_for("screen_index"))
    ok, payload, error = api.disconnect(identity)
    if ok:
        flash(payload.get("message", "Disconnected"), "success")
    else:
        flash(f"שגיאה בהתנתקות: {error}", "danger")
    return redirect(url_for("screen_index"))


@app.route("/screen/release", methods=["POST"])
def screen_release():
    identity = session.pop("screen_user", None)
    if not identity:
        return redirect(url_for("screen_index"))
    ok, payload, error = api.release(identity)
    if ok:
        flash(payload.get("message", "Released"), "success")
    else:
        flash(f"שגיאה בשחרור התא: {error}", "danger")
    return redirect(url_for("screen_index"))


@app.route("/screen/connect", methods=["POST"])
def screen_connect():
    identity = _screen_user()
    if not identity:
        return redirect(url_for("screen_index"))
    ok, payload, error = api.lookup(identity)
    if not ok or not payload.get("found"):
        flash(f"No box for {identity}" if ok else f"Error: {error}", "danger")
        return redirect(url_for("screen_index"))

    address = (payload.get("box") or {}).get("ipAddress")
    if not address:
        flash("Box has no address", "danger")
        return redirect(url_for("screen_index"))

    if not config.ROTATE_CREDENTIALS:
        return redirect(f"http://{address}")

    try:
        result = rotator.rotate(address)
    except RotationError as e:
        logger.error("Credential rotation failed for box %s (%s): step=%s changed=%s",
                     address, identity, e.step, e.credential_changed)
        flash(f"Connection setup failed at '{e.step}'", "danger")
        return redirect(url_for("screen_index"))

    session.pop("screen_user", None)
    return render_template(
        "redirect_form.html",
        action=config.LOGIN_URL.format(address=address),
        user=config.LOGIN_USER,
        secret=result.secret,
    )
