# sleeptracker/core/errors.py
"""
Error types shared by the analytics core, the services and the API layer.

The set is closed: every failure raised by this package is one of the
subclasses below, and the API registers one handler per class.
"""


class SleepTrackerError(Exception):
    """Base class for all sleep tracker errors"""

    def __init__(self, message=""):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class InvalidInput(SleepTrackerError):
    """Validation failure: bad dates, ranges, window lengths or durations"""


class UpstreamReadFailure(SleepTrackerError):
    """The record store could not be read; never retried"""


class NotFound(SleepTrackerError):
    """A referenced record does not exist"""

    def __init__(self, message="not found"):
        super().__init__(message)
