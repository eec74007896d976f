from enum import IntEnum
from typing import Final

import ldap

#: Scheme assumed when a target has none
DEFAULT_SCHEME: Final[str] = "ldap"
#: Port assumed when a non-``ldapi`` target has none
DEFAULT_PORT: Final[int] = 389

#: The default search filter
DEFAULT_FILTER: Final[str] = "(objectClass=*)"


class ResultCode(IntEnum):
    """
    LDAP result codes, as defined by RFC 4511 section 4.1.9, plus the client
    side codes of the LDAP C API, used for local errors
    (:py:attr:`FILTER_ERROR`, :py:attr:`PARAM_ERROR`).
    """

    SUCCESS = 0
    OPERATIONS_ERROR = 1
    PROTOCOL_ERROR = 2
    TIMELIMIT_EXCEEDED = 3
    SIZELIMIT_EXCEEDED = 4
    COMPARE_FALSE = 5
    COMPARE_TRUE = 6
    AUTH_METHOD_NOT_SUPPORTED = 7
    STRONG_AUTH_REQUIRED = 8
    REFERRAL = 10
    ADMINLIMIT_EXCEEDED = 11
    UNAVAILABLE_CRITICAL_EXTENSION = 12
    CONFIDENTIALITY_REQUIRED = 13
    SASL_BIND_IN_PROGRESS = 14
    NO_SUCH_ATTRIBUTE = 16
    UNDEFINED_TYPE = 17
    INAPPROPRIATE_MATCHING = 18
    CONSTRAINT_VIOLATION = 19
    TYPE_OR_VALUE_EXISTS = 20
    INVALID_SYNTAX = 21
    NO_SUCH_OBJECT = 32
    ALIAS_PROBLEM = 33
    INVALID_DN_SYNTAX = 34
    ALIAS_DEREF_PROBLEM = 36
    INAPPROPRIATE_AUTH = 48
    INVALID_CREDENTIALS = 49
    INSUFFICIENT_ACCESS = 50
    BUSY = 51
    UNAVAILABLE = 52
    UNWILLING_TO_PERFORM = 53
    LOOP_DETECT = 54
    NAMING_VIOLATION = 64
    OBJECT_CLASS_VIOLATION = 65
    NOT_ALLOWED_ON_NONLEAF = 66
    NOT_ALLOWED_ON_RDN = 67
    ALREADY_EXISTS = 68
    NO_OBJECT_CLASS_MODS = 69
    AFFECTS_MULTIPLE_DSAS = 71
    OTHER = 80
    SERVER_DOWN = 81
    LOCAL_ERROR = 82
    ENCODING_ERROR = 83
    DECODING_ERROR = 84
    TIMEOUT = 85
    AUTH_UNKNOWN = 86
    FILTER_ERROR = 87
    USER_CANCELLED = 88
    PARAM_ERROR = 89
    NO_MEMORY = 90
    CONNECT_ERROR = 91

    @property
    def description(self) -> str:
        """
        The human readable description of this code, e.g. ``No such object``.
        """
        return _DESCRIPTIONS.get(self, self.name.replace("_", " ").capitalize())

    @classmethod
    def describe(cls, code: int) -> str:
        """
        Return the description for ``code``, which need not be a known code.
        """
        try:
            return cls(code).description
        except ValueError:
            return f"Unknown result code {code}"

    @classmethod
    def name_of(cls, code: int) -> str:
        try:
            return cls(code).name
        except ValueError:
            return f"UNKNOWN_{code}"


_DESCRIPTIONS: dict[ResultCode, str] = {
    ResultCode.SUCCESS: "Success",
    ResultCode.OPERATIONS_ERROR: "Operations error",
    ResultCode.PROTOCOL_ERROR: "Protocol error",
    ResultCode.SIZELIMIT_EXCEEDED: "Size limit exceeded",
    ResultCode.COMPARE_FALSE: "Compare False",
    ResultCode.COMPARE_TRUE: "Compare True",
    ResultCode.NO_SUCH_ATTRIBUTE: "No such attribute",
    ResultCode.TYPE_OR_VALUE_EXISTS: "Type or value exists",
    ResultCode.NO_SUCH_OBJECT: "No such object",
    ResultCode.INVALID_DN_SYNTAX: "Invalid DN syntax",
    ResultCode.INAPPROPRIATE_AUTH: "Inappropriate authentication",
    ResultCode.INVALID_CREDENTIALS: "Invalid credentials",
    ResultCode.INSUFFICIENT_ACCESS: "Insufficient access",
    ResultCode.UNWILLING_TO_PERFORM: "Server is unwilling to perform",
    ResultCode.ALREADY_EXISTS: "Already exists",
    ResultCode.SERVER_DOWN: "Can't contact LDAP server",
    ResultCode.FILTER_ERROR: "Bad search filter",
    ResultCode.PARAM_ERROR: "Bad parameter to an ldap routine",
}


class Scope(IntEnum):
    """
    Search scopes.  The values are the same as python-ldap's
    ``ldap.SCOPE_*`` constants so that either may be passed to ``search``.
    """

    BASE = ldap.SCOPE_BASE  # type: ignore[attr-defined]
    ONE = ldap.SCOPE_ONELEVEL  # type: ignore[attr-defined]
    SUB = ldap.SCOPE_SUBTREE  # type: ignore[attr-defined]

    @classmethod
    def coerce(cls, scope: "str | int") -> "Scope":
        """
        Convert ``scope`` to a :py:class:`Scope`.

        Args:
            scope: one of ``base``, ``one``, ``onelevel``, ``sub``,
                ``subtree`` (any case), or one of the integer scope values

        Raises:
            ValueError: ``scope`` is not a known scope

        """
        if isinstance(scope, str):
            try:
                return _SCOPE_NAMES[scope.lower()]
            except KeyError as exc:
                msg = f"unknown search scope {scope!r}"
                raise ValueError(msg) from exc
        return cls(scope)


_SCOPE_NAMES: dict[str, Scope] = {
    "base": Scope.BASE,
    "one": Scope.ONE,
    "onelevel": Scope.ONE,
    "sub": Scope.SUB,
    "subtree": Scope.SUB,
}
