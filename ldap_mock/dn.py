"""
Distinguished name helpers.

All parsing is delegated to :py:mod:`ldap.dn`.  A DN is modelled as the list
of RDNs that :py:func:`ldap.dn.str2dn` returns, most specific RDN first; tree
structure (parent, children, subtree membership) is derived purely from that
list, by comparing normalized RDN suffixes.
"""

from __future__ import annotations

import ldap
import ldap.dn

from .constants import ResultCode

DNParts = list[list[tuple[str, str, int]]]


def invalid_dn_syntax(dn: object, info: str = "invalid DN") -> ldap.LDAPError:
    """
    Build the exception we raise for a DN that does not parse.
    """
    return ldap.INVALID_DN_SYNTAX(  # type: ignore[attr-defined]
        {
            "result": int(ResultCode.INVALID_DN_SYNTAX),
            "desc": ResultCode.INVALID_DN_SYNTAX.description,
            "info": f"{info}: {dn!r}",
            "matched": "",
        }
    )


def parse_dn(dn: str, sort: bool = False) -> DNParts:
    """
    Parse ``dn`` into its RDN components.

    Args:
        dn: the DN to parse

    Keyword Args:
        sort: sort the attribute/value assertions of multi-valued RDNs by
            attribute type, so that ``cn=a+sn=b`` and ``sn=b+cn=a`` come out
            the same

    Raises:
        ldap.INVALID_DN_SYNTAX: ``dn`` is not a string, or is not well formed

    Returns:
        A list of RDNs, each a list of ``(attr, value, flags)`` tuples.

    """
    if not isinstance(dn, str):
        raise invalid_dn_syntax(dn, "DN must be a string")
    try:
        parts = ldap.dn.str2dn(dn, flags=ldap.DN_FORMAT_LDAPV3)  # type: ignore[attr-defined]
    except ldap.DECODING_ERROR as exc:  # type: ignore[attr-defined]
        raise invalid_dn_syntax(dn) from exc
    for rdn in parts:
        for attr, value, _ in rdn:
            if not attr or value is None:
                raise invalid_dn_syntax(dn)
    if sort:
        return [sorted(rdn, key=lambda ava: ava[0].lower()) for rdn in parts]
    return parts


def is_dn(dn: object) -> bool:
    """
    ``True`` if ``dn`` is a string that parses as a DN.
    """
    try:
        parse_dn(dn)  # type: ignore[arg-type]
    except ldap.INVALID_DN_SYNTAX:  # type: ignore[attr-defined]
        return False
    return True


def to_str(parts: DNParts) -> str:
    return ldap.dn.dn2str(parts)  # type: ignore[attr-defined]


def canonical_dn(dn: str) -> str:
    """
    Return the canonical form of ``dn``: insignificant whitespace removed,
    special characters escaped, one ``,`` between RDNs.  The case of
    attribute types and values, and the order of the assertions in a
    multi-valued RDN, are preserved.

    Example:
        >>> canonical_dn('uid=user1, ou=Users ,dc=example, dc=com')
        'uid=user1,ou=Users,dc=example,dc=com'

    Raises:
        ldap.INVALID_DN_SYNTAX: ``dn`` is not well formed

    """
    return to_str(parse_dn(dn))


def dn_key(dn: str) -> str:
    """
    The canonical form of ``dn`` with multi-valued RDNs sorted by attribute
    type.  Two DNs naming the same entry have keys that differ at most in case.

    Example:
        >>> dn_key('sn=b+cn=a,dc=example')
        'cn=a+sn=b,dc=example'

    """
    return to_str(parse_dn(dn, sort=True))


def normalize_dn(dn: str) -> str:
    """
    The comparison key for ``dn``: its :py:func:`dn_key`, lower-cased.
    """
    return dn_key(dn).lower()


def explode(dn: str) -> list[str]:
    """
    Return the normalized RDN strings of ``dn``, most specific first.
    """
    return [to_str([rdn]).lower() for rdn in parse_dn(dn, sort=True)]


def split_rdn(dn: str) -> tuple[str, str]:
    """
    Split ``dn`` into its leading RDN and its parent DN.

    Example:
        >>> split_rdn('uid=user1,ou=users,dc=example,dc=com')
        ('uid=user1', 'ou=users,dc=example,dc=com')

    Raises:
        ldap.INVALID_DN_SYNTAX: ``dn`` is not well formed, or is the empty DN

    """
    parts = parse_dn(dn)
    if not parts:
        raise invalid_dn_syntax(dn, "the root DN has no RDN")
    return to_str(parts[:1]), to_str(parts[1:])


def parent_dn(dn: str) -> str:
    return split_rdn(dn)[1]


def rdn_values(rdn: str) -> list[tuple[str, str]]:
    """
    Return the ``(attribute, value)`` pairs of the single RDN ``rdn``.

    Raises:
        ldap.INVALID_DN_SYNTAX: ``rdn`` is not exactly one well formed RDN

    """
    parts = parse_dn(rdn)
    if len(parts) != 1:
        raise invalid_dn_syntax(rdn, "expected a single RDN")
    return [(attr, value) for attr, value, _ in parts[0]]


def depth_below(dn: list[str], base: list[str]) -> int | None:
    """
    Given two exploded DNs, return how many RDNs ``dn`` sits below ``base``:
    ``0`` when they are the same entry, ``1`` for an immediate child, and so
    on.  Return ``None`` if ``dn`` is not in the subtree rooted at ``base``.
    """
    extra = len(dn) - len(base)
    if extra < 0:
        return None
    if dn[extra:] != base:
        return None
    return extra


def replace_suffix(dn: str, old_suffix: str, new_suffix: str) -> str:
    """
    Replace the ``old_suffix`` of ``dn`` with ``new_suffix``, keeping the RDNs
    of ``dn`` above the suffix untouched and in order.

    Example:
        >>> replace_suffix('uid=1,ou=a,dc=x', 'ou=a,dc=x', 'ou=b,dc=x')
        'uid=1,ou=b,dc=x'

    Raises:
        ValueError: ``old_suffix`` is not a suffix of ``dn``

    """
    parts = parse_dn(dn)
    depth = depth_below(explode(dn), explode(old_suffix))
    if depth is None:
        msg = f"{old_suffix!r} is not a suffix of {dn!r}"
        raise ValueError(msg)
    return to_str(parts[:depth] + parse_dn(new_suffix))
