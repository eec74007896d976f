"""
Configurable responses for ``bind``, ``unbind`` and ``abandon``.

An override is either a :py:class:`FixedResult` (a code and an optional
message) or a :py:class:`CallbackResult` (a function computing the response
from the operation's arguments, plus an optional fallback message).  Both are
turned into a ``(code, message)`` pair by :py:func:`resolve_override`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .constants import ResultCode
from .logging import logger
from .message import LDAPMessage

if TYPE_CHECKING:
    from .types import OverrideCallback

#: The operations whose responses can be overridden
OVERRIDABLE_OPERATIONS: tuple[str, ...] = ("bind", "unbind", "abandon")


@dataclass(frozen=True)
class FixedResult:
    """
    Always respond with :py:attr:`code` and :py:attr:`message`.
    """

    code: int
    message: str | None = None


@dataclass(frozen=True)
class CallbackResult:
    """
    Respond with whatever :py:attr:`callback` returns when called with the
    operation's arguments.  The callback may return:

    * ``None``: succeed, with :py:attr:`message` as the message
    * a result code: use it, with :py:attr:`message` as the message
    * a ``(code, message)`` tuple, or an :py:class:`LDAPMessage`: use both;
      :py:attr:`message` is used only if the returned message is ``None``
    """

    callback: OverrideCallback
    message: str | None = None


Override = FixedResult | CallbackResult


def make_override(value: Any = None, message: str | None = None) -> Override | None:
    """
    Build an override from the forms accepted by ``mock_bind`` and friends.

    Args:
        value: ``None`` (no override), a result code, a ``(code, message)``
            tuple, an :py:class:`LDAPMessage`, or a callable
        message: a message to use instead of the one in ``value``; for a
            callable, the message to use when the callable returns none

    Raises:
        TypeError: ``value`` is none of the accepted forms

    Returns:
        The override, or ``None`` if ``value`` asks for plain success.

    """
    if value is None or (
        isinstance(value, int) and value == ResultCode.SUCCESS and message is None
    ):
        return None
    if callable(value):
        return CallbackResult(callback=value, message=message)
    code, text = _interpret(value)
    if code is None:
        code = ResultCode.SUCCESS
    return FixedResult(code=code, message=message if message is not None else text)


def _interpret(value: Any) -> tuple[int | None, str | None]:
    """
    Turn a callback's return value, or an override value, into
    ``(code, message)``, either of which may be ``None``.
    """
    if value is None:
        return None, None
    if isinstance(value, LDAPMessage):
        return value.code, value.error or None
    if isinstance(value, bool):
        msg = f"an override must be a result code, not {value!r}"
        raise TypeError(msg)
    if isinstance(value, int):
        return int(value), None
    if isinstance(value, (tuple, list)) and 1 <= len(value) <= 2:  # noqa: PLR2004
        code = None if value[0] is None else int(value[0])
        text = value[1] if len(value) == 2 else None  # noqa: PLR2004
        return code, text
    msg = f"cannot use {value!r} as an LDAP result"
    raise TypeError(msg)


def resolve_override(override: Override | None, *args: Any, **kwargs: Any) -> tuple[int, str]:
    """
    Compute the ``(code, message)`` response for an operation.

    Args:
        override: the override installed for the operation, if any
        *args: the positional arguments of the operation
        **kwargs: the keyword arguments of the operation

    Returns:
        A 2-tuple of result code and message.

    """
    if override is None:
        return ResultCode.SUCCESS, ""
    if isinstance(override, FixedResult):
        return override.code, override.message or ""
    code, text = _interpret(override.callback(*args, **kwargs))
    if code is None:
        code = ResultCode.SUCCESS
    if text is None:
        text = override.message
    return code, text or ""


class SessionOverrides:
    """
    The override table of one directory tree.  Every handle on the tree sees
    the same overrides, and they stay in place until replaced.
    """

    def __init__(self) -> None:
        self._overrides: dict[str, Override | None] = dict.fromkeys(
            OVERRIDABLE_OPERATIONS
        )

    def _check(self, operation: str) -> None:
        if operation not in self._overrides:
            msg = f'"{operation}" responses cannot be overridden'
            raise ValueError(msg)

    def set(self, operation: str, value: Any = None, message: str | None = None) -> None:
        """
        Install an override for ``operation``; see :py:func:`make_override`.

        Raises:
            ValueError: ``operation`` is not one of ``bind``, ``unbind`` or ``abandon``

        """
        self._check(operation)
        self._overrides[operation] = make_override(value, message)
        logger.debug(
            "overrides.set operation=%s override=%s", operation, self._overrides[operation]
        )

    def get(self, operation: str) -> Override | None:
        self._check(operation)
        return self._overrides[operation]

    def resolve(self, operation: str, *args: Any, **kwargs: Any) -> tuple[int, str]:
        self._check(operation)
        code, text = resolve_override(self._overrides[operation], *args, **kwargs)
        logger.debug("overrides.resolve operation=%s code=%s message=%s", operation, code, text)
        return code, text

    def reset(self) -> None:
        for operation in self._overrides:
            self._overrides[operation] = None
