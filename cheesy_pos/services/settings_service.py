from __future__ import annotations

import json
import threading
from dataclasses import dataclass, replace
from pathlib import Path

import structlog

from ..errors import PersistenceError, ValidationError
from ..extensions import db
from ..model import Setting
from .receipt_service import StoreInfo

logger = structlog.get_logger()

PRINTER_SETTINGS_KEY = "pos_printer_settings"
PAPER_WIDTHS = (32, 40, 48, 58, 80)


@dataclass(frozen=True)
class PrinterSettings:
    enabled: bool = True
    width: int = 40
    auto_print: bool = False

    @classmethod
    def from_blob(cls, blob) -> "PrinterSettings":
        if not isinstance(blob, dict):
            raise ValueError("printer settings must be an object")
        base = cls()
        width = blob.get("width", base.width)
        if isinstance(width, bool) or not isinstance(width, int) or width <= 0:
            raise ValueError(f"invalid printer width {width!r}")
        enabled = blob.get("enabled", base.enabled)
        auto_print = blob.get("autoPrint", base.auto_print)
        if not isinstance(enabled, bool) or not isinstance(auto_print, bool):
            raise ValueError("enabled and autoPrint must be true or false")
        return cls(enabled=enabled, width=width, auto_print=auto_print)

    def to_blob(self) -> dict:
        return {"enabled": self.enabled, "width": self.width, "autoPrint": self.auto_print}

    def merged(self, changes: dict) -> "PrinterSettings":
        """Apply a partial update in either naming (``autoPrint`` or ``auto_print``)."""
        changes = dict(changes or {})
        if "auto_print" in changes and "autoPrint" not in changes:
            changes["autoPrint"] = changes.pop("auto_print")
        blob = {**self.to_blob(), **{k: v for k, v in changes.items() if k in ("enabled", "width", "autoPrint")}}
        try:
            if isinstance(blob["width"], bool):
                raise TypeError(blob["width"])
            width = int(blob["width"])
        except (TypeError, ValueError):
            raise ValidationError("Paper width must be a whole number of characters.")
        if width <= 0:
            raise ValidationError("Paper width must be greater than zero.")
        for key in ("enabled", "autoPrint"):
            if not isinstance(blob[key], bool):
                raise ValidationError(f"{key} must be true or false.")
        return replace(self, enabled=blob["enabled"], width=width, auto_print=blob["autoPrint"])


class PrinterSettingsStore:
    """Device-local printer configuration, one JSON object under ``pos_printer_settings``."""

    def __init__(self, path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def load(self) -> PrinterSettings:
        if not self.path.exists():
            return PrinterSettings()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return PrinterSettings.from_blob(raw.get(PRINTER_SETTINGS_KEY))
        except (OSError, ValueError, AttributeError) as e:
            logger.warning("printer_settings.unreadable", path=str(self.path), error=str(e))
            return PrinterSettings()

    def save(self, settings: PrinterSettings) -> PrinterSettings:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(".tmp")
            tmp.write_text(json.dumps({PRINTER_SETTINGS_KEY: settings.to_blob()}, indent=2), encoding="utf-8")
            tmp.replace(self.path)
        logger.info("printer_settings.saved", **settings.to_blob())
        return settings


# ---- business settings (database) ------------------------------------------

DEFAULT_SETTINGS = {
    "business_name": "Ms. Cheesy",
    "tagline": "Point of Sale System",
    "store_address": "",
    "store_phone": "",
    "logo_url": "/logo.png",
    "login_logo_url": "/logo.png",
    "logo_alt": "Ms. Cheesy Logo",
}


def get_settings() -> dict:
    values = dict(DEFAULT_SETTINGS)
    for row in Setting.query.filter(Setting.key.in_(list(DEFAULT_SETTINGS))).all():
        values[row.key] = row.value
    return values


def update_settings(changes: dict) -> dict:
    unknown = sorted(set(changes or {}) - set(DEFAULT_SETTINGS))
    if unknown:
        raise ValidationError(f"Unknown setting(s): {', '.join(unknown)}")
    cleaned = {key: "" if value is None else str(value).strip() for key, value in (changes or {}).items()}
    if "business_name" in cleaned and not cleaned["business_name"]:
        raise ValidationError("Business name cannot be empty.")

    for key, value in cleaned.items():
        row = db.session.get(Setting, key)
        if row is None:
            db.session.add(Setting(key=key, value=value))
        else:
            row.value = value
    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception("settings.update_failed", error=str(e))
        raise PersistenceError("Could not save your settings. Please try again.")
    logger.info("settings.updated", keys=sorted(changes or {}))
    return get_settings()


def store_info(config) -> StoreInfo:
    s = get_settings()
    return StoreInfo(
        name=s["business_name"] or DEFAULT_SETTINGS["business_name"],
        address=s["store_address"],
        phone=s["store_phone"],
        currency_symbol=config.get("CURRENCY_SYMBOL", "₱"),
        utc_offset_hours=float(config.get("STORE_UTC_OFFSET_HOURS", 0)),
    )
