"""
Capability interface with an overridable default method.

try_me must be supplied by every implementation. try_me_again falls back to
default_try_me_again, so adding it did not force existing implementations
to change.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

EMPTY_MESSAGE_REPLY = "You didn't send nothing to me"


def default_try_me_again(message: str) -> str:
    """Default reply for try_me_again."""
    if not message:
        return EMPTY_MESSAGE_REPLY
    return f"You send this message again: {message}"


class DefaultCapability(ABC):
    """Base class for capabilities; only try_me is abstract."""

    @abstractmethod
    def try_me(self, message: str) -> str:
        pass

    def try_me_again(self, message: str) -> str:
        return default_try_me_again(message)


class _FunctionCapability(DefaultCapability):
    def __init__(self, try_me: Callable[[str], str], try_me_again: Optional[Callable[[str], str]] = None):
        self._try_me = try_me
        self._try_me_again = try_me_again

    def try_me(self, message: str) -> str:
        return self._try_me(message)

    def try_me_again(self, message: str) -> str:
        if self._try_me_again is None:
            return super().try_me_again(message)
        return self._try_me_again(message)


def capability_from(try_me: Callable[[str], str],
                    try_me_again: Optional[Callable[[str], str]] = None) -> DefaultCapability:
    """Build a capability from plain functions; omit try_me_again to keep the default."""
    if not callable(try_me):
        raise TypeError("try_me must be callable")
    if try_me_again is not None and not callable(try_me_again):
        raise TypeError("try_me_again must be callable")
    return _FunctionCapability(try_me, try_me_again)
