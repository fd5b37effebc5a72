"""Account domain exceptions.

Raised by value objects and aggregates for invalid input; the application
layer turns them into field errors.
"""


class InvalidEmailError(ValueError):
    """Raised when email format is invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class InvalidNameError(ValueError):
    """Raised when a display name is empty or too long."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
