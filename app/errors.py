"""Error taxonomy shared by the store and the HTTP layer.

Every error carries the HTTP status it maps to and a client-safe ``msg``.
"""


class ContentServerError(Exception):
    status_code = 500

    def __init__(self, msg: str):
        super().__init__(msg)
        self.msg = msg


class ClientError(ContentServerError):
    """Bad input: missing form fields, missing path segment."""
    status_code = 400


class NotFoundError(ContentServerError):
    """Unknown route or unknown file name."""
    status_code = 404


class PersistenceError(ContentServerError):
    """Disk read/write failure."""
    status_code = 500
