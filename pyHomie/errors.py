"""Exceptions raised by pyHomie.

Configuration problems derive from :class:`ValueError` and misuse of
the device lifecycle from :class:`RuntimeError`, so callers that do not
care about the distinction can catch the builtin types.
"""


class HomieError(Exception):
    """Base class for all pyHomie errors."""


class InvalidIdentifier(HomieError, ValueError):
    """An id does not match ``[a-z0-9][a-z0-9-]*``."""


class DuplicateIdentifier(HomieError, ValueError):
    """A node or property with the same id already exists."""


class InvalidConfiguration(HomieError, ValueError):
    """Illegal datatype, format, unit or initial value for a property."""


class AlreadyPublished(HomieError, RuntimeError):
    """The operation is only allowed before the device is published."""


class RoutingTaskError(HomieError, RuntimeError):
    """The inbound-routing task terminated with an uncaught exception.

    The original exception is available as ``__cause__``.
    """
