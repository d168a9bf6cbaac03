"""
Exceptions raised by viewbind.

Markup problems never raise: the parser and evaluators degrade to "no rule"
and log instead. The classes below cover caller bugs in host code that uses
the exposed utility operations, plus engine lifecycle misuse.
"""


class ViewBindError(Exception):
    """Base exception for viewbind errors"""
    pass


class EngineStateError(ViewBindError):
    """Raised when the engine is started twice or used after stop"""
    pass


class UsageError(ViewBindError):
    """Base class for caller bugs in host utility calls"""
    pass


class InvalidArgumentError(UsageError, TypeError):
    """Raised when an argument has the wrong type"""
    pass


class SelectionError(UsageError, ValueError):
    """Raised when a single element is required but several were given"""
    pass


class UnmodifiableElementError(UsageError):
    """Raised when a transform targets an element whose value cannot be rewritten"""
    pass


__all__ = [
    "ViewBindError", "EngineStateError", "UsageError",
    "InvalidArgumentError", "SelectionError", "UnmodifiableElementError",
]
