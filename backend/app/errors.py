"""
Domain errors raised by the services.

Each error carries the HTTP status the request boundary should answer with, so
``app.main`` can turn any of them into a ``{success, message}`` response
without knowing which service raised it.
"""


class MailerError(Exception):
    """Base class for errors that surface to the caller as a message."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(MailerError):
    """A required field is missing or a value is unusable."""

    status_code = 400


class NotFound(MailerError):
    """The named attachment does not exist."""

    status_code = 404


class PayloadTooLarge(MailerError):
    """Too many uploaded files, or one of them is over the size ceiling."""

    status_code = 413


class AuthenticationRequired(MailerError):
    """The transport needs a provider access token and none was supplied."""

    status_code = 401


class TransportError(MailerError):
    """The mail provider refused or failed to accept the message."""

    status_code = 500


class TransportTimeout(TransportError):
    """The mail provider did not answer within the configured timeout."""

    status_code = 504
