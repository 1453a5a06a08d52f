"""Error taxonomy for the calendar tag filter."""


class CalendarTagFilterError(Exception):
    """Base class for recoverable, reportable errors."""

    code = 'error'

    def __init__(self, message: str = ''):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class AuthRequired(CalendarTagFilterError):
    """Not authenticated with Google Calendar."""
    code = 'auth_failed'


class NoCalendarSelected(CalendarTagFilterError):
    """No calendar selected."""
    code = 'no_calendar'


class FetchError(CalendarTagFilterError):
    """Failed to retrieve events from Google Calendar."""
    code = 'api_error'


class InvalidFormat(CalendarTagFilterError):
    """Category ID must be alphanumeric with underscores or hyphens only."""
    code = 'invalid_format'


class AlreadyExists(CalendarTagFilterError):
    """A category with this ID already exists."""
    code = 'already_exists'


class NotFound(CalendarTagFilterError):
    """Category not found."""
    code = 'not_found'
