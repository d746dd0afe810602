"""Error taxonomy shared by the engines, the store and the HTTP surfaces."""
from flask import jsonify


class PortalError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PortalError):
    """Rejected user input; nothing was written."""
    status_code = 400


class InvalidBanDuration(ValidationError):
    def __init__(self, message: str = 'Set a ban duration or choose a permanent ban.'):
        super().__init__(message)


class NotFound(PortalError):
    status_code = 404


class FetchError(PortalError):
    """The store could not be read, or returned data of the wrong shape."""
    status_code = 503


class WriteError(PortalError):
    """The store rejected a write; no local state was changed."""
    status_code = 502


def register_error_handlers(app) -> None:
    @app.errorhandler(PortalError)
    def handle_portal_error(exc: PortalError):
        return jsonify({'error': exc.message}), exc.status_code
