class PlaylogError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(PlaylogError):
    status_code = 400


class ConflictError(PlaylogError):
    """Duplicate rows the client asked for. Surfaced as 400, like validation."""

    status_code = 400


class NotFoundError(PlaylogError):
    status_code = 404
