import os


def _env_int(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw, 0)


def _env_float(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    ENV = os.getenv("FLASK_ENV", "development")
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # store identity / money
    CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₱")
    STORE_UTC_OFFSET_HOURS = _env_float("STORE_UTC_OFFSET_HOURS", 8)
    RECEIPT_PREFIX = os.getenv("RECEIPT_PREFIX", "MSC")

    # behaviour tuning
    CATALOG_CACHE_TTL = _env_int("CATALOG_CACHE_TTL", 300)
    KITCHEN_COMPLETED_GRACE_SECONDS = _env_int("KITCHEN_COMPLETED_GRACE_SECONDS", 3)
    CHECKOUT_CONFIRM_DELAY_MS = _env_int("CHECKOUT_CONFIRM_DELAY_MS", 1500)
    CART_IDLE_TTL_SECONDS = _env_int("CART_IDLE_TTL_SECONDS", 4 * 60 * 60)
    CART_MAX = _env_int("CART_MAX", 500)
    SUGGESTION_HISTORY_ORDERS = _env_int("SUGGESTION_HISTORY_ORDERS", 500)

    # printing: "spool" | "escpos-network" | "escpos-usb"
    PRINTER_BACKEND = os.getenv("PRINTER_BACKEND", "spool")
    PRINTER_HOST = os.getenv("PRINTER_HOST")
    PRINTER_PORT = _env_int("PRINTER_PORT", 9100)
    PRINTER_USB_VENDOR_ID = _env_int("PRINTER_USB_VENDOR_ID", 0x28E9)
    PRINTER_USB_PRODUCT_ID = _env_int("PRINTER_USB_PRODUCT_ID", 0x0289)
    PRINTER_SETTINGS_PATH = os.getenv("PRINTER_SETTINGS_PATH")
    RECEIPT_SPOOL_DIR = os.getenv("RECEIPT_SPOOL_DIR")

    @staticmethod
    def init_app(app):
        os.makedirs(app.instance_path, exist_ok=True)
        if not app.config.get("SQLALCHEMY_DATABASE_URI"):
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv(
                "DATABASE_URL", f"sqlite:///{os.path.join(app.instance_path, 'app.db')}"
            )
        if not app.config.get("PRINTER_SETTINGS_PATH"):
            app.config["PRINTER_SETTINGS_PATH"] = os.path.join(app.instance_path, "printer_settings.json")
        if not app.config.get("RECEIPT_SPOOL_DIR"):
            app.config["RECEIPT_SPOOL_DIR"] = os.path.join(app.instance_path, "receipts")
