from __future__ import annotations


class EspToolTuiException(Exception):
    """
    This exception terminates the current operation.

    It is caught at the operation boundary, reported to the user
    and control returns to the menu.
    """


class LaunchFailureException(EspToolTuiException):
    """
    The flashing tool could not be started (missing binary, permission).
    """


class FirmwareMissingException(EspToolTuiException):
    pass


class EspToolTuiAppExitException(Exception):
    """
    This exception terminates the application

    When this exception is thrown, everything has been handled and logged.
    When this exception is caught, the only thing to do is to print the message and exit.
    """
