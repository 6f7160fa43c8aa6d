"""
Error types and error reporting helpers for atlinks.

Only an unreachable administration service is fatal. Everything else
(unresolved identities, malformed permission tokens, unknown extended rights)
is reported per item and processing carries on.
"""

import traceback

from ldap3.core.exceptions import LDAPException

from atlinks.lib.logger import is_verbose, logging


class AtlinksError(Exception):
    """Base class for errors raised by atlinks."""


class ServiceUnavailableError(AtlinksError):
    """The Active Roles administration service could not be reached or bound."""


class DecodeError(AtlinksError):
    """An encoded permission token could not be split into its fields."""

    def __init__(self, token: str, message: str) -> None:
        super().__init__(f"{message}: {token!r}")
        self.token = token


def describe_ldap_error(error: LDAPException) -> str:
    """
    Build a one-line description of an ldap3 exception.

    Args:
        error: Exception raised by ldap3

    Returns:
        Exception class name followed by its message
    """
    message = str(error).strip() or "no details"
    return f"{type(error).__name__}: {message}"


def handle_error(is_warning: bool = False) -> None:
    """
    Print the current stack trace in verbose mode, or a hint otherwise.

    Args:
        is_warning: Log the hint as a warning instead of an error
    """
    if is_verbose():
        traceback.print_exc()
    else:
        msg = "Use -debug to print a stacktrace"
        if is_warning:
            logging.warning(msg)
        else:
            logging.error(msg)
