# cheesy_pos/errors.py
import structlog
from flask import jsonify
from werkzeug.exceptions import HTTPException

from .utils.api import api_error

logger = structlog.get_logger()


class PosError(Exception):
    """Base for every error that carries a user-facing message."""

    status_code = 400

    def __init__(self, message: str, data: dict | None = None):
        super().__init__(message)
        self.message = message
        self.data = data


class ValidationError(PosError):
    """Rejected before anything is persisted; caller state is untouched."""

    status_code = 422


class CheckoutInProgressError(ValidationError):
    status_code = 409


class InvalidTransitionError(ValidationError):
    status_code = 409


class NotFoundError(PosError):
    status_code = 404


class PersistenceError(PosError):
    """The data store refused or failed the operation; nothing was committed."""

    status_code = 503


class PrintError(PosError):
    """A receipt could not be rendered or sent. Never undoes a committed order."""

    status_code = 502


def register_error_handlers(app):
    @app.errorhandler(PosError)
    def handle_pos_error(e: PosError):
        r = jsonify(api_error(e.message, e.data))
        r.status_code = e.status_code
        return r

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        r = jsonify(api_error(e.description or e.name))
        r.status_code = e.code or 500
        return r

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("request.unhandled_error", error=repr(e))
        r = jsonify(api_error("Something went wrong. Please try again."))
        r.status_code = 500
        return r
