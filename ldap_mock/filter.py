"""
Search filter evaluation.

Filter strings are parsed with :py:mod:`ldap_filter`; the resulting
:py:class:`ldap_filter.Filter` tree is then walked here, rather than with
``Filter.match()``, so that ``&`` and ``|`` short-circuit and so that values
can be compared with the matching rules an optional
:py:class:`ldap.schema.SubSchema` assigns to each attribute type.

:py:mod:`ldap_filter` decodes the escapes in plain assertion values but keeps
them in substring values, so after parsing every leaf's ``val`` is reset to
the assertion value exactly as written in the filter text.  Evaluation then
sees one form only: RFC 4515 escaped text, where a bare ``*`` is always a
wildcard and ``\\2a`` is always a literal asterisk.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

import ldap
import ldap.schema
from ldap_filter import Filter  # type: ignore[reportUnknownVariableType]
from ldap_filter.parser import ParseError

from .constants import DEFAULT_FILTER, ResultCode
from .dn import normalize_dn

if TYPE_CHECKING:
    from .entry import Entry

Normalizer = Callable[[str], Any]

_ESCAPE_RE: re.Pattern[bytes] = re.compile(rb"\\([0-9a-fA-F]{2}|.)")
_SPACE_RE: re.Pattern[str] = re.compile(r"\s+")
#: A parenthesised filter item that is not ``&``, ``|`` or ``!``
_ITEM_RE: re.Pattern[str] = re.compile(r"\(\s*([^()&|!\s][^()]*)\)")
_ASSERTION_RE: re.Pattern[str] = re.compile(r"[^=~<>]*(?:~=|>=|<=|=)(.*)", re.S)


def parse_filter(filterstr: Any = None) -> Any:
    """
    Parse ``filterstr`` into an :py:class:`ldap_filter.Filter`.  The outer
    parentheses may be omitted, and ``None`` means ``(objectClass=*)``.  An
    already parsed :py:class:`ldap_filter.Filter` is returned unchanged, and
    its values are taken to be escaped filter text, as
    ``Filter.attribute(...).equal_to(...)`` builds them.

    The ``val`` of each item in the returned tree is the escaped assertion
    value from ``filterstr``, so ``to_string()`` gives back a valid filter.

    Raises:
        ldap.FILTER_ERROR: ``filterstr`` is not a valid filter

    """
    if filterstr is None:
        filterstr = DEFAULT_FILTER
    if isinstance(filterstr, Filter):
        return filterstr
    if isinstance(filterstr, bytes):
        filterstr = filterstr.decode("utf-8")
    if not isinstance(filterstr, str):
        raise _filter_error(filterstr, "filter must be a string")
    text = filterstr.strip()
    if text and not text.startswith("("):
        text = f"({text})"
    try:
        parsed = Filter.parse(text)
    except ParseError as exc:
        raise _filter_error(filterstr, str(exc)) from exc
    items = [_ASSERTION_RE.match(m.group(1)) for m in _ITEM_RE.finditer(text)]
    leaves = list(_leaves(parsed))
    if len(items) != len(leaves) or not all(items):
        raise _filter_error(filterstr, "cannot match filter items to their values")
    for leaf, item in zip(leaves, items):
        leaf.val = item.group(1)  # type: ignore[union-attr]
    return parsed


def _leaves(filt: Any) -> Iterator[Any]:
    """
    Yield the attribute assertions in ``filt``, left to right.
    """
    if filt.type == "group":
        for child in filt.filters:
            yield from _leaves(child)
    else:
        yield filt


def _filter_error(filterstr: Any, info: str) -> ldap.LDAPError:
    return ldap.FILTER_ERROR(  # type: ignore[attr-defined]
        {
            "result": int(ResultCode.FILTER_ERROR),
            "desc": ResultCode.FILTER_ERROR.description,
            "info": f"{info}: {filterstr!r}",
        }
    )


def unescape(value: str) -> str:
    """
    Undo RFC 4515 escaping (``\\2a`` and friends) in an assertion value.
    """
    raw = value.encode("utf-8")

    def replace(match: re.Match[bytes]) -> bytes:
        token = match.group(1)
        if len(token) == 2:  # noqa: PLR2004
            return bytes([int(token, 16)])
        return token

    return _ESCAPE_RE.sub(replace, raw).decode("utf-8", errors="replace")


# ====================
# Matching rules
# ====================


def case_ignore(value: str) -> str:
    return _SPACE_RE.sub(" ", value.strip()).casefold()


def case_exact(value: str) -> str:
    return _SPACE_RE.sub(" ", value.strip())


def octet_string(value: str) -> str:
    return value


def integer(value: str) -> int | None:
    try:
        return int(value.strip())
    except ValueError:
        return None


def numeric_string(value: str) -> str:
    return value.replace(" ", "")


def telephone_number(value: str) -> str:
    return re.sub(r"[\s-]", "", value).casefold()


def distinguished_name(value: str) -> str:
    try:
        return normalize_dn(value)
    except ldap.INVALID_DN_SYNTAX:  # type: ignore[attr-defined]
        return case_ignore(value)


def approximate(value: str) -> str:
    return _SPACE_RE.sub("", value).casefold()


#: Matching rule name (lower-cased) -> value normalizer
MATCHING_RULES: dict[str, Normalizer] = {
    "caseignorematch": case_ignore,
    "caseignoreorderingmatch": case_ignore,
    "caseignoresubstringsmatch": case_ignore,
    "caseignoreia5match": case_ignore,
    "caseignoreia5substringsmatch": case_ignore,
    "caseignorelistmatch": case_ignore,
    "objectidentifiermatch": case_ignore,
    "booleanmatch": case_ignore,
    "caseexactmatch": case_exact,
    "caseexactorderingmatch": case_exact,
    "caseexactsubstringsmatch": case_exact,
    "caseexactia5match": case_exact,
    "caseexactia5substringsmatch": case_exact,
    "octetstringmatch": octet_string,
    "octetstringorderingmatch": octet_string,
    "generalizedtimematch": octet_string,
    "generalizedtimeorderingmatch": octet_string,
    "integermatch": integer,
    "integerorderingmatch": integer,
    "numericstringmatch": numeric_string,
    "numericstringorderingmatch": numeric_string,
    "numericstringsubstringsmatch": numeric_string,
    "telephonenumbermatch": telephone_number,
    "telephonenumbersubstringsmatch": telephone_number,
    "distinguishednamematch": distinguished_name,
    "uniquemembermatch": distinguished_name,
}


def _ordering_default(value: str) -> Any:
    """
    Schema-free ordering: numbers compare as numbers, everything else as
    case-insensitive strings.
    """
    number = integer(value)
    if number is not None:
        return (0, number, "")
    return (1, 0, case_ignore(value))


class FilterEvaluator:
    """
    Decide whether an :py:class:`Entry` matches a parsed filter.

    Without a schema every comparison is case-insensitive.  With a schema,
    the ``EQUALITY``, ``SUBSTR`` and ``ORDERING`` matching rules of each
    attribute type (following ``SUP`` chains) select how values are
    compared; rules we don't know fall back to case-insensitive matching.

    Note:
        A presence test on ``objectClass`` matches every entry, so that the
        default filter ``(objectClass=*)`` selects entries that were added
        without an ``objectClass``.

    Keyword Args:
        schema: an optional :py:class:`ldap.schema.SubSchema`

    """

    def __init__(self, schema: ldap.schema.SubSchema | None = None) -> None:
        self.schema = schema
        self._rules: dict[tuple[str, str], Normalizer | None] = {}

    def matches(self, filt: Any, entry: Entry) -> bool:
        """
        Evaluate ``filt`` (an :py:class:`ldap_filter.Filter`) against ``entry``.
        """
        if filt.type == "group":
            if filt.comp == "&":
                return all(self.matches(f, entry) for f in filt.filters)
            if filt.comp == "|":
                return any(self.matches(f, entry) for f in filt.filters)
            if filt.comp == "!":
                return not any(self.matches(f, entry) for f in filt.filters)
            return False
        return self._match_item(filt.attr, filt.comp, filt.val, entry)

    def equals(self, entry: Entry, attr: str, value: str) -> bool:
        """
        Equality assertion: does ``attr`` on ``entry`` hold ``value``?  This is
        what ``compare`` uses.
        """
        normalize = self.rule(attr, "equality") or case_ignore
        target = normalize(value)
        if target is None:
            return False
        return any(normalize(v) == target for v in entry.get_value(attr))

    def _match_item(self, attr: str, comp: str, val: str, entry: Entry) -> bool:
        if comp == "=" and val == "*":
            return attr.lower() == "objectclass" or entry.exists(attr)
        values = entry.get_value(attr)
        if not values:
            return False
        if comp == "=" and "*" in val:
            return self._match_substrings(attr, val, values)
        if comp == "=":
            return self.equals(entry, attr, unescape(val))
        if comp == "~=":
            target = approximate(unescape(val))
            return any(approximate(v) == target for v in values)
        if comp in (">=", "<="):
            return self._match_ordering(attr, comp, unescape(val), values)
        return False

    def _match_substrings(self, attr: str, val: str, values: list[str]) -> bool:
        normalize = self.rule(attr, "substr") or self.rule(attr, "equality") or case_ignore
        if normalize in (integer, distinguished_name):
            normalize = case_ignore
        pieces = [normalize(unescape(p)) for p in val.split("*")]
        initial, middle, final = pieces[0], pieces[1:-1], pieces[-1]
        for value in values:
            text = normalize(value)
            if not text.startswith(initial):
                continue
            pos = len(initial)
            for piece in middle:
                found = text.find(piece, pos)
                if found < 0:
                    break
                pos = found + len(piece)
            else:
                if len(text) - pos >= len(final) and text.endswith(final):
                    return True
        return False

    def _match_ordering(self, attr: str, comp: str, val: str, values: list[str]) -> bool:
        normalize = self.rule(attr, "ordering") or _ordering_default
        target = normalize(val)
        if target is None:
            return False
        for value in values:
            current = normalize(value)
            if current is None:
                continue
            try:
                if (comp == ">=" and current >= target) or (comp == "<=" and current <= target):
                    return True
            except TypeError:
                continue
        return False

    def rule(self, attr: str, kind: str) -> Normalizer | None:
        """
        Return the normalizer for the ``kind`` (``equality``, ``substr`` or
        ``ordering``) matching rule of ``attr``, or ``None`` if there is no
        schema or the schema names no such rule.
        """
        if self.schema is None:
            return None
        key = (attr.lower(), kind)
        if key not in self._rules:
            name = self._rule_name(attr, kind, set())
            self._rules[key] = (
                MATCHING_RULES.get(name.lower(), case_ignore) if name else None
            )
        return self._rules[key]

    def _rule_name(self, attr: str, kind: str, seen: set[str]) -> str | None:
        if attr.lower() in seen:
            return None
        seen.add(attr.lower())
        attr_type = self.schema.get_obj(ldap.schema.AttributeType, attr)  # type: ignore[union-attr]
        if attr_type is None:
            return None
        name = getattr(attr_type, kind, None)
        if name:
            return name
        for sup in attr_type.sup or ():
            name = self._rule_name(sup, kind, seen)
            if name:
                return name
        return None
