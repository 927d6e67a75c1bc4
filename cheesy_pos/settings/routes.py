# cheesy_pos/settings/routes.py
from flask import request

from ..errors import ValidationError
from ..services import pos
from ..services.receipt_service import sample_receipt
from ..services.settings_service import PAPER_WIDTHS, get_settings, update_settings
from ..utils.api import ok, utcnow
from ..utils.decorators import role_required, signed_in
from . import bp


# ---- business settings ------------------------------------------------------

@bp.get("")
@signed_in
def read_settings():
    return ok("Settings fetched", get_settings())


@bp.put("")
@bp.patch("")
@role_required("admin")
def write_settings():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Body must be a JSON object")
    return ok("Settings saved", update_settings(data))


# ---- printer (device-local) -------------------------------------------------

def _printer_payload(settings):
    return {**settings.to_blob(), "width_options": list(PAPER_WIDTHS)}


@bp.get("/printer")
@signed_in
def read_printer_settings():
    return ok("Printer settings fetched", _printer_payload(pos().printer_settings.load()))


@bp.put("/printer")
@bp.patch("/printer")
@role_required("admin")
def write_printer_settings():
    """Body: any of { "enabled": bool, "width": int, "autoPrint": bool }"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Body must be a JSON object")
    store = pos().printer_settings
    saved = store.save(store.load().merged(data))
    return ok("Printer settings saved", _printer_payload(saved))


@bp.post("/printer/test")
@role_required("admin")
def test_print():
    result = pos().receipt_printer.preview(sample_receipt(utcnow()), "customer")
    status = 200 if result.delivered else 502
    return ok("Test receipt generated" if result.delivered else "Test receipt failed", result.as_api(), status=status)
