class NukokenError(Exception):
    pass


class ValidationError(NukokenError):
    """Rejected input. The message is shown to the user as is."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
