"""Domain exceptions not covered by ``protean.exceptions``."""


class AccessDenied(Exception):
    """The caller is not allowed to see or change the requested order."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)
        self.message = message
