"""
Application settings: one JSON document stored under a fixed key.

The document holds presentation and company defaults (company block on
rendered invoices, default tax rate, payment terms, UI preferences).  It is
created from ``DEFAULTS`` on first read.  Reads are normalised so callers
always see every key with the right type; writes are sanitised so unknown
keys and out-of-range numbers never reach the store.  Every write also
appends a snapshot to ``settings_history``.
"""
import json
import logging
import math
from typing import Any, Mapping, Optional

from .database import Database, new_id, utcnow_iso
from .pagination import clamp_limit

logger = logging.getLogger(__name__)

SETTINGS_KEY = "current"

DEFAULTS: dict[str, Any] = {
    # Appearance
    "theme": "light",
    "sidebarCollapsed": False,
    # Notifications
    "emailNotifications": True,
    "pushNotifications": False,
    "invoiceReminders": True,
    # Company
    "companyName": "FedHub Software Solutions",
    "companyEmail": "info@fedhubsoftware.com",
    "companyPhone": "+91 9003285428",
    "companyAddress": (
        "P No 69,70 Gokula Nandhana, Gokul Nagar, Hosur, Krishnagiri-DT, "
        "Tamilnadu, India-635109"
    ),
    "companyGST": "33AACCF2123P1Z5",
    "companyPAN": "AACCF2123P",
    "companyMSME": "UDYAM-TN-06-0012345",
    # Invoicing
    "defaultTaxRate": 18,
    "defaultPaymentTerms": 30,
    "invoicePrefix": "INV",
    # Security
    "twoFactorAuth": False,
    "sessionTimeout": 60,
}

_BOOL_KEYS = (
    "sidebarCollapsed", "emailNotifications", "pushNotifications",
    "invoiceReminders", "twoFactorAuth",
)
_TEXT_KEYS = ("companyName", "companyEmail", "companyPhone", "companyAddress", "invoicePrefix")
_UPPER_KEYS = ("companyGST", "companyPAN", "companyMSME")
_NUMBER_KEYS = ("defaultTaxRate", "defaultPaymentTerms", "sessionTimeout")

HISTORY_DEFAULT_LIMIT = 10
HISTORY_MAX_LIMIT = 50


def _to_number(value: Any) -> Optional[float]:
    """Finite float from *value*, or None."""
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _compact(number: float) -> Any:
    return int(number) if float(number).is_integer() else number


def normalize(value: Mapping[str, Any]) -> dict[str, Any]:
    """Every known key present with its expected type; missing keys take defaults."""
    out: dict[str, Any] = {"theme": "dark" if value.get("theme") == "dark" else "light"}
    for key in _BOOL_KEYS:
        out[key] = bool(value.get(key, DEFAULTS[key]))
    for key in (*_TEXT_KEYS, *_UPPER_KEYS):
        stored = value.get(key)
        out[key] = stored if stored is not None else DEFAULTS[key]
    for key in _NUMBER_KEYS:
        number = _to_number(value.get(key, DEFAULTS[key]))
        out[key] = _compact(number) if number is not None else DEFAULTS[key]
    return out


def sanitize_patch(body: Mapping[str, Any]) -> dict[str, Any]:
    """
    Keep only known keys with acceptable types.  Tax identifiers are
    upper-cased; numbers are clamped (tax rate 0-100, payment terms >= 1,
    session timeout >= 5) and fall back to their default when unparseable.
    """
    out: dict[str, Any] = {}
    if body.get("theme"):
        out["theme"] = "dark" if body["theme"] == "dark" else "light"
    for key in _BOOL_KEYS:
        if isinstance(body.get(key), bool):
            out[key] = body[key]
    for key in _TEXT_KEYS:
        if isinstance(body.get(key), str):
            out[key] = body[key]
    for key in _UPPER_KEYS:
        if isinstance(body.get(key), str):
            out[key] = body[key].upper()

    if "defaultTaxRate" in body:
        n = _to_number(body["defaultTaxRate"])
        out["defaultTaxRate"] = _compact(max(0.0, min(100.0, n))) if n is not None else 18
    if "defaultPaymentTerms" in body:
        n = _to_number(body["defaultPaymentTerms"])
        out["defaultPaymentTerms"] = max(1, math.floor(n)) if n is not None else 30
    if "sessionTimeout" in body:
        n = _to_number(body["sessionTimeout"])
        out["sessionTimeout"] = max(5, math.floor(n)) if n is not None else 60
    return out


def _document(row: Mapping[str, Any]) -> dict[str, Any]:
    try:
        value = json.loads(row["value"] or "{}")
    except json.JSONDecodeError:
        logger.warning("Settings row %s holds invalid JSON; using defaults", row["key"])
        value = {}
    return {
        "id": row["id"],
        **normalize(value if isinstance(value, dict) else {}),
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"] or row["created_at"],
    }


class SettingsStore:

    def __init__(self, db: Database) -> None:
        self.db = db

    def _snapshot(self, conn, row: Mapping[str, Any]) -> None:
        conn.execute(
            "INSERT INTO settings_history (id, key, value, created_at) VALUES (?, ?, ?, ?)",
            (new_id(), row["key"], row["value"], row["updated_at"]),
        )

    def _ensure(self, conn) -> dict:
        row = conn.execute("SELECT * FROM settings WHERE key = ?", (SETTINGS_KEY,)).fetchone()
        if row is None:
            now = utcnow_iso()
            conn.execute(
                "INSERT INTO settings (id, key, value, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (new_id(), SETTINGS_KEY, json.dumps(DEFAULTS), now, now),
            )
            logger.info("Settings initialised from defaults")
            row = conn.execute("SELECT * FROM settings WHERE key = ?", (SETTINGS_KEY,)).fetchone()
            self._snapshot(conn, row)
        return dict(row)

    def _write(self, merge_onto_defaults: bool, body: Mapping[str, Any]) -> dict[str, Any]:
        patch = sanitize_patch(body)
        with self.db.transaction() as conn:
            row = self._ensure(conn)
            if merge_onto_defaults:
                base = dict(DEFAULTS)
            else:
                try:
                    base = json.loads(row["value"] or "{}")
                except json.JSONDecodeError:
                    base = {}
                if not isinstance(base, dict):
                    base = {}
            merged = {**base, **patch}
            conn.execute(
                "UPDATE settings SET value = ?, updated_at = ? WHERE key = ?",
                (json.dumps(merged), utcnow_iso(), SETTINGS_KEY),
            )
            row = conn.execute("SELECT * FROM settings WHERE key = ?", (SETTINGS_KEY,)).fetchone()
            self._snapshot(conn, row)
        logger.info("Settings %s: %s", "replaced" if merge_onto_defaults else "updated", sorted(patch))
        return _document(dict(row))

    def get(self) -> dict[str, Any]:
        """Current settings, creating the row from defaults when missing."""
        with self.db.transaction() as conn:
            row = self._ensure(conn)
        return _document(row)

    def patch(self, body: Mapping[str, Any]) -> dict[str, Any]:
        """Merge the sanitised *body* onto the stored settings."""
        return self._write(False, body)

    def replace(self, body: Mapping[str, Any]) -> dict[str, Any]:
        """Reset to defaults, then apply the sanitised *body*."""
        return self._write(True, body)

    def history(self, limit: Any = None) -> list[dict[str, Any]]:
        """Snapshots written so far, newest first."""
        limit = clamp_limit(limit, HISTORY_DEFAULT_LIMIT, 1, HISTORY_MAX_LIMIT)
        rows = self.db.query(
            "SELECT id, key, value, created_at, created_at AS updated_at "
            "FROM settings_history ORDER BY seq DESC LIMIT ?",
            (limit,),
        )
        return [_document(r) for r in rows]
