"""Calendar exceptions."""


class CalendarError(Exception):
    """Base exception for calendar operations."""

    pass


class CalendarAPIError(CalendarError):
    """Raised when a Calendar API call fails or can't reach Google."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class InvalidEventError(CalendarError):
    """Raised when event input from the user can't be used."""

    pass
