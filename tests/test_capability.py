"""
Tests for the capability interface and its default method.
"""

import pytest

from capability import (
    EMPTY_MESSAGE_REPLY,
    DefaultCapability,
    capability_from,
    default_try_me_again,
)


class OnlyTryMe(DefaultCapability):
    def try_me(self, message):
        return "you send this message: " + message


class ImplementsAll(DefaultCapability):
    def try_me(self, message):
        return "You send this message to me: " + message

    def try_me_again(self, message):
        return "You send this message, again, to me: " + message


class TestDefaultMethod:
    """try_me_again falls back to the default unless overridden"""

    def test_try_me(self):
        assert OnlyTryMe().try_me("my name is marcus") == "you send this message: my name is marcus"

    def test_try_me_again_default_empty(self):
        assert OnlyTryMe().try_me_again("") == "You didn't send nothing to me"

    def test_try_me_again_default_echo(self):
        reply = OnlyTryMe().try_me_again("my name is marcus")
        assert reply == "You send this message again: my name is marcus"

    def test_try_me_again_overridden(self):
        capability = ImplementsAll()
        assert capability.try_me_again("my name is marcus") == \
            "You send this message, again, to me: my name is marcus"
        assert capability.try_me("hi") == "You send this message to me: hi"

    def test_try_me_is_required(self):
        class Incomplete(DefaultCapability):
            pass

        with pytest.raises(TypeError):
            Incomplete()

    def test_default_function_reusable(self):
        """Overrides may call the default explicitly"""
        class Loud(DefaultCapability):
            def try_me(self, message):
                return message

            def try_me_again(self, message):
                return default_try_me_again(message).upper()

        assert Loud().try_me_again("") == EMPTY_MESSAGE_REPLY.upper()


class TestCapabilityFrom:
    """Capabilities built from plain functions"""

    def test_only_try_me(self):
        capability = capability_from(lambda m: "you send this message: " + m)
        assert isinstance(capability, DefaultCapability)
        assert capability.try_me("x") == "you send this message: x"
        assert capability.try_me_again("") == EMPTY_MESSAGE_REPLY

    def test_both_functions(self):
        capability = capability_from(
            lambda m: "first: " + m,
            lambda m: "again: " + m,
        )
        assert capability.try_me("x") == "first: x"
        assert capability.try_me_again("x") == "again: x"

    def test_rejects_non_callables(self):
        with pytest.raises(TypeError):
            capability_from("nope")
        with pytest.raises(TypeError):
            capability_from(str, try_me_again=42)
