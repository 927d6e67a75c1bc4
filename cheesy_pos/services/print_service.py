"""Receipt output: where formatted text goes once a sale is committed."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Protocol

import structlog

from ..errors import PrintError
from .receipt_service import StoreInfo, format_receipts

logger = structlog.get_logger()

COPIES = ("customer", "kitchen")


@dataclass(frozen=True)
class PrintJob:
    copy: str  # "customer" | "kitchen"
    title: str
    text: str
    receipt_number: str
    auto_print: bool


@dataclass(frozen=True)
class DispatchResult:
    copy: str
    status: str  # "printed" | "previewed" | "skipped" | "failed"
    location: str | None = None
    error: str | None = None

    @property
    def delivered(self) -> bool:
        return self.status in ("printed", "previewed")

    def as_api(self):
        return {"copy": self.copy, "status": self.status, "location": self.location, "error": self.error}


def _title(copy: str) -> str:
    return "Customer Receipt" if copy == "customer" else "Kitchen Receipt"


class Surface(Protocol):
    def open(self, job: PrintJob) -> str: ...


_UNSAFE = re.compile(r"[^A-Za-z0-9_-]+")


class SpoolSurface:
    """Writes each job to a text file; the preview/download target."""

    def __init__(self, directory):
        self.directory = Path(directory)

    def open(self, job: PrintJob) -> str:
        name = _UNSAFE.sub("-", job.receipt_number or "receipt").strip("-") or "receipt"
        path = self.directory / f"{name}-{job.copy}.txt"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_text(job.text, encoding="utf-8")
        except OSError as exc:
            raise PrintError(f"Could not save the {job.copy} receipt.") from exc
        return str(path)


class EscposSurface:
    """Sends jobs to an ESC/POS thermal printer through python-escpos."""

    def __init__(self, connect: Callable[[], object], name: str = "escpos"):
        self._connect = connect
        self.name = name

    @classmethod
    def network(cls, host: str, port: int = 9100) -> "EscposSurface":
        def connect():
            from escpos.printer import Network
            return Network(host, port=port)
        return cls(connect, name=f"escpos://{host}:{port}")

    @classmethod
    def usb(cls, vendor_id: int, product_id: int) -> "EscposSurface":
        def connect():
            from escpos.printer import Usb
            return Usb(vendor_id, product_id)
        return cls(connect, name=f"usb://{vendor_id:04x}:{product_id:04x}")

    def open(self, job: PrintJob) -> str:
        try:
            printer = self._connect()
        except Exception as exc:
            raise PrintError("Receipt printer is not reachable.") from exc
        try:
            printer.text(job.text)
            printer.cut()
        except Exception as exc:
            raise PrintError(f"Printer did not accept the {job.copy} receipt.") from exc
        finally:
            close = getattr(printer, "close", None)
            if callable(close):
                close()
        return self.name


class PrintDispatcher:
    """Routes a receipt to the printer or to preview according to printer settings."""

    def __init__(self, printer: Surface, preview: Surface, settings_provider: Callable[[], object]):
        self.printer = printer
        self.preview = preview
        self._settings = settings_provider

    def dispatch(self, text: str, copy: str, receipt_number: str) -> DispatchResult:
        settings = self._settings()
        if not settings.enabled:
            return DispatchResult(copy, "skipped")

        job = PrintJob(
            copy=copy,
            title=_title(copy),
            text=text,
            receipt_number=receipt_number,
            auto_print=settings.auto_print,
        )
        if job.auto_print:
            return DispatchResult(copy, "printed", self.printer.open(job))
        return DispatchResult(copy, "previewed", self.preview.open(job))


class ReceiptPrinter:
    """Formats both receipt copies of a sale and hands them to the dispatcher.

    A failing copy is recorded and logged; it does not stop the other copy.
    """

    def __init__(self, dispatcher: PrintDispatcher, settings_provider, store_info: Callable[[], StoreInfo]):
        self.dispatcher = dispatcher
        self._settings = settings_provider
        self._store_info = store_info

    def render(self, receipt):
        return format_receipts(receipt, self._settings(), self._store_info())

    def preview(self, receipt, copy: str = "customer") -> DispatchResult:
        """Render one copy straight to the preview surface, whatever the settings say."""
        texts = self.render(receipt)
        job = PrintJob(
            copy=copy,
            title=_title(copy),
            text=texts.customer if copy == "customer" else texts.kitchen,
            receipt_number=getattr(receipt, "receipt_number", None) or "",
            auto_print=False,
        )
        try:
            location = self.dispatcher.preview.open(job)
        except PrintError as exc:
            logger.warning("print.preview_failed", copy=copy, error=exc.message)
            return DispatchResult(copy, "failed", error=exc.message)
        return DispatchResult(copy, "previewed", location)

    def print_receipts(self, receipt, copies=COPIES) -> list[DispatchResult]:
        texts = self.render(receipt)
        receipt_number = getattr(receipt, "receipt_number", None) or ""
        results = []
        for copy in copies:
            text = texts.customer if copy == "customer" else texts.kitchen
            try:
                result = self.dispatcher.dispatch(text, copy, receipt_number)
            except PrintError as exc:
                logger.warning("print.failed", copy=copy, receipt_number=receipt_number, error=exc.message)
                result = DispatchResult(copy, "failed", error=exc.message)
            else:
                logger.info("print.dispatched", copy=copy, receipt_number=receipt_number, status=result.status)
            results.append(result)
        return results


def build_surfaces(config) -> tuple[Surface, Surface]:
    """(printer, preview) for the configured PRINTER_BACKEND."""
    preview = SpoolSurface(Path(config["RECEIPT_SPOOL_DIR"]) / "preview")
    backend = (config.get("PRINTER_BACKEND") or "spool").lower()
    if backend == "escpos-network":
        if not config.get("PRINTER_HOST"):
            raise ValueError("PRINTER_HOST is required for the escpos-network backend")
        return EscposSurface.network(config["PRINTER_HOST"], int(config.get("PRINTER_PORT") or 9100)), preview
    if backend == "escpos-usb":
        return EscposSurface.usb(int(config["PRINTER_USB_VENDOR_ID"]), int(config["PRINTER_USB_PRODUCT_ID"])), preview
    if backend != "spool":
        raise ValueError(f"unknown PRINTER_BACKEND '{backend}'")
    return SpoolSurface(Path(config["RECEIPT_SPOOL_DIR"]) / "printed"), preview
