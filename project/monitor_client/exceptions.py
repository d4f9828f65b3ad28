GENERIC_ERROR_MESSAGE = "Une erreur est survenue"


class ApiError(Exception):
    """
    A request failed. ``message`` is the server's ``message`` field when it
    sent one, the generic fallback otherwise.
    """

    def __init__(self, message=GENERIC_ERROR_MESSAGE, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StoreError(ApiError):
    """The server answered with a body that does not match the endpoint schema."""
