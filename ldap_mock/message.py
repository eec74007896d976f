from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .constants import ResultCode

if TYPE_CHECKING:
    import ldap

    from .entry import Entry
    from .types import LDAPData

#: Codes that report an outcome rather than a failure
NON_ERROR_CODES: frozenset[int] = frozenset(
    {ResultCode.SUCCESS, ResultCode.COMPARE_TRUE, ResultCode.COMPARE_FALSE}
)


@dataclass(frozen=True)
class LDAPMessage:
    """
    The response to a single directory operation.  Messages are built fresh
    for each operation and never change afterwards.

    Example:
        >>> mesg = conn.add('uid=user1,dc=example,dc=com', attrs={'sn': 'User'})
        >>> mesg.code
        0
        >>> conn.add('uid=user1,dc=example,dc=com').error_name
        'ALREADY_EXISTS'

    """

    operation: str  #: the name of the operation, e.g. ``add``
    code: int = ResultCode.SUCCESS  #: the LDAP result code
    error: str = ""  #: the diagnostic message from the server
    matched_dn: str = ""  #: set when only part of a DN could be matched

    @classmethod
    def from_exception(cls, operation: str, exc: ldap.LDAPError, **kwargs: Any) -> Any:
        """
        Build a message from a python-ldap exception.  python-ldap exceptions
        carry a dict with ``result``, ``desc``, ``info`` and (sometimes)
        ``matched`` keys.

        Args:
            operation: the name of the operation that failed
            exc: the exception

        Keyword Args:
            **kwargs: any other fields for the message

        """
        details: dict[str, Any] = {}
        if exc.args and isinstance(exc.args[0], dict):
            details = exc.args[0]
        code = details.get("result", ResultCode.OTHER)
        text = details.get("info") or details.get("desc") or ""
        if isinstance(text, bytes):
            text = text.decode("utf-8", errors="replace")
        return cls(
            operation=operation,
            code=int(code),
            error=str(text).strip(),
            matched_dn=details.get("matched", "") or "",
            **kwargs,
        )

    @property
    def is_error(self) -> bool:
        return self.code not in NON_ERROR_CODES

    @property
    def error_name(self) -> str:
        """
        The symbolic name of :py:attr:`code`, e.g. ``NO_SUCH_OBJECT``.
        """
        return ResultCode.name_of(self.code)

    @property
    def error_text(self) -> str:
        """
        The standard description of :py:attr:`code`, e.g. ``No such object``.
        """
        return ResultCode.describe(self.code)


@dataclass(frozen=True)
class LDAPSearchMessage(LDAPMessage):
    """
    The response to a ``search``: an :py:class:`LDAPMessage` that also carries
    the matching entries, in the order the directory holds them.
    """

    entries: tuple[Entry, ...] = field(default_factory=tuple)  #: the results

    def count(self) -> int:
        return len(self.entries)

    def entry(self, index: int) -> Entry | None:
        """
        Return the ``index``-th result, or ``None`` if there are not that many.
        """
        try:
            return self.entries[index]
        except IndexError:
            return None

    def as_struct(self) -> dict[str, LDAPData]:
        """
        Return the results as a dict of DN to attribute dict.
        """
        return {entry.dn: entry.as_dict() for entry in self.entries}

    def sorted(self, *attrs: str) -> list[Entry]:
        """
        Return the results sorted by the first value of each of ``attrs`` in
        turn (case-insensitive), or by DN when no attributes are given.
        """
        if not attrs:
            return sorted(self.entries, key=lambda e: e.dn.lower())
        return sorted(
            self.entries,
            key=lambda e: [(e.get_value(a) or [""])[0].lower() for a in attrs],
        )
