"""gcal - Google Calendar from the command line."""

__version__ = "0.0.1"
