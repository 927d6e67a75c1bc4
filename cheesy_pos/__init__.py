# --- cheesy_pos/__init__.py ---
from datetime import timedelta

import structlog
from flask import Flask, current_app, jsonify

from .config import Config
from .errors import register_error_handlers
from .extensions import db, jwt, cors, migrate
from .utils.log import configure_logging


def _build_services(app):
    from .services import PosServices
    from .services.cart_service import CartRegistry
    from .services.catalog_service import Catalog, CatalogCache
    from .services.kitchen_service import KitchenQueue
    from .services.order_store import OrderStore
    from .services.print_service import PrintDispatcher, ReceiptPrinter, build_surfaces
    from .services.settings_service import PrinterSettingsStore, store_info

    store = OrderStore(
        receipt_prefix=app.config["RECEIPT_PREFIX"],
        utc_offset_hours=float(app.config["STORE_UTC_OFFSET_HOURS"]),
    )
    printer_settings = PrinterSettingsStore(app.config["PRINTER_SETTINGS_PATH"])
    printer, preview = build_surfaces(app.config)
    dispatcher = PrintDispatcher(printer, preview, printer_settings.load)

    return PosServices(
        store=store,
        catalog=Catalog(store, CatalogCache(ttl_seconds=app.config["CATALOG_CACHE_TTL"])),
        carts=CartRegistry(
            order_number_source=store.peek_order_number,
            idle_ttl=app.config["CART_IDLE_TTL_SECONDS"],
            max_carts=app.config["CART_MAX"],
        ),
        printer_settings=printer_settings,
        receipt_printer=ReceiptPrinter(dispatcher, printer_settings.load, lambda: store_info(current_app.config)),
        kitchen=KitchenQueue(store, grace_seconds=app.config["KITCHEN_COMPLETED_GRACE_SECONDS"]),
    )


def create_app(test_config=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(hours=12)
    if test_config:
        app.config.update(test_config)
    Config.init_app(app)

    configure_logging(app.config["LOG_LEVEL"])
    logger = structlog.get_logger()

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={r"/*": {"origins": "*"}}, expose_headers=["X-Cart-Id", "X-Order-Id"])
    migrate.init_app(app, db)

    # Register blueprints
    from .auth import bp as auth_bp; app.register_blueprint(auth_bp)
    from .product import bp as product_bp; app.register_blueprint(product_bp)
    from .cart import bp as cart_bp; app.register_blueprint(cart_bp)
    from .order import bp as order_bp; app.register_blueprint(order_bp)
    from .sales import bp as sales_bp; app.register_blueprint(sales_bp)
    from .settings import bp as settings_bp; app.register_blueprint(settings_bp)

    register_error_handlers(app)

    from .cli import register_cli
    register_cli(app)

    app.extensions["cheesy_pos"] = _build_services(app)

    @app.get("/")
    def health():
        return jsonify(ok=True, msg="API running")

    with app.app_context():
        db.create_all()

    logger.info("app.ready", blueprints=sorted(app.blueprints), printer_backend=app.config["PRINTER_BACKEND"])
    return app
