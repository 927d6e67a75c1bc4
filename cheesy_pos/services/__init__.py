from dataclasses import dataclass

from flask import current_app


@dataclass
class PosServices:
    """Long-lived collaborators built once per app and shared by the blueprints."""

    store: object
    catalog: object
    carts: object
    printer_settings: object
    receipt_printer: object
    kitchen: object


def pos() -> PosServices:
    return current_app.extensions["cheesy_pos"]
