from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from case_insensitive_dict import CaseInsensitiveDict

if TYPE_CHECKING:
    from .types import Attributes, CILDAPData, LDAPData, RawValues


def to_values(value: RawValues) -> list[str]:
    """
    Convert a value, or list of values, as a caller may pass it to
    ``add``/``modify`` into the ``list[str]`` we store.  ``bytes`` are decoded
    as UTF-8 and ``None`` becomes the empty list.

    Raises:
        TypeError: a value was neither ``str`` nor ``bytes``

    """
    if value is None:
        return []
    if isinstance(value, (str, bytes)):
        value = [value]
    values: list[str] = []
    for v in value:
        if isinstance(v, bytes):
            values.append(v.decode("utf-8"))
        elif isinstance(v, str):
            values.append(v)
        else:
            msg = f"attribute values must be str or bytes, not {type(v).__name__}: {v!r}"
            raise TypeError(msg)
    return values


def attribute_pairs(attrs: Attributes | None) -> list[tuple[str, RawValues]]:
    """
    Flatten ``attrs`` (a mapping or a sequence of ``(name, values)`` pairs)
    into a list of pairs, checking that every name is a ``str``.

    Raises:
        TypeError: an attribute name was not a ``str``, or ``attrs`` was not
            a mapping or a sequence of pairs

    """
    if not attrs:
        return []
    items = list(attrs.items()) if isinstance(attrs, Mapping) else list(attrs)
    pairs: list[tuple[str, RawValues]] = []
    for item in items:
        try:
            name, value = item
        except (TypeError, ValueError) as exc:
            msg = f"expected an (attribute, values) pair, got {item!r}"
            raise TypeError(msg) from exc
        if not isinstance(name, str):
            msg = f"attributes must be of type str: '{name!r}'"
            raise TypeError(msg)
        pairs.append((name, value))
    return pairs


class Entry:
    """
    A single directory entry: a DN and its attributes.

    Attribute names are case-insensitive but keep the spelling they were first
    given with; attributes keep their insertion order, and so do the values
    of each attribute.

    Example:
        >>> entry = Entry('uid=user1,dc=example,dc=com', {'sn': 'User', 'mail': []})
        >>> entry.get_value('SN')
        ['User']
        >>> entry.attributes()
        ['sn']

    Args:
        dn: the DN of the entry

    Keyword Args:
        attrs: the attributes of the entry, either a mapping or a sequence of
            ``(name, values)`` pairs.  Attributes with no values are dropped.

    """

    def __init__(self, dn: str, attrs: Attributes | None = None) -> None:
        self.dn: str = dn  #: the DN, as stored in the tree
        self.attrs: CILDAPData = CaseInsensitiveDict()  #: attribute name -> values
        for name, value in attribute_pairs(attrs):
            self.add(name, value)

    def __repr__(self) -> str:
        return f"Entry({self.dn!r}, {self.as_dict()!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entry):
            return NotImplemented
        return self.dn.lower() == other.dn.lower() and self.as_dict() == other.as_dict()

    # Accessors

    def attributes(self) -> list[str]:
        """
        The names of the attributes of this entry, in stored order.
        """
        return list(self.attrs.keys())

    def exists(self, attr: str) -> bool:
        return attr in self.attrs

    def get_value(self, attr: str) -> list[str]:
        """
        Return a copy of the values of ``attr``, or ``[]`` if the entry has no
        such attribute.
        """
        return list(self.attrs.get(attr, []))

    def as_dict(self) -> LDAPData:
        return {name: list(values) for name, values in self.attrs.items()}

    def copy(self) -> Entry:
        return Entry(self.dn, self.as_dict())

    def project(self, attrlist: list[str] | None = None, typesonly: bool = False) -> Entry:
        """
        Return a copy of this entry holding only the attributes named in
        ``attrlist``, in this entry's order.  An empty ``attrlist``, or one
        containing ``*``, selects every attribute; ``1.1`` selects none.

        Keyword Args:
            attrlist: the attribute names to keep (case-insensitive)
            typesonly: if ``True``, keep attribute names but no values

        """
        if not attrlist or "*" in attrlist:
            wanted = None
        else:
            wanted = {attr.lower() for attr in attrlist if attr != "1.1"}
        projected = Entry(self.dn)
        for name, values in self.attrs.items():
            if wanted is not None and name.lower() not in wanted:
                continue
            projected.attrs[name] = [] if typesonly else list(values)
        return projected

    # Mutators

    def has_value(self, attr: str, value: str) -> bool:
        """
        Test whether ``attr`` holds ``value``, ignoring case.
        """
        return value.lower() in {v.lower() for v in self.attrs.get(attr, [])}

    def add(self, attr: str, value: RawValues) -> None:
        """
        Append values to ``attr``, creating it if needed.  Values that are
        already there are appended again.
        """
        values = to_values(value)
        if not values:
            return
        self.attrs.setdefault(attr, []).extend(values)

    def delete(self, attr: str, value: RawValues = None) -> None:
        """
        Remove values from ``attr``; with no values, remove the attribute.
        Values or attributes that are not there are ignored.
        """
        if attr not in self.attrs:
            return
        values = to_values(value)
        if not values:
            del self.attrs[attr]
            return
        doomed = {v.lower() for v in values}
        remaining = [v for v in self.attrs[attr] if v.lower() not in doomed]
        if remaining:
            self.attrs[attr][:] = remaining
        else:
            del self.attrs[attr]

    def replace(self, attr: str, value: RawValues) -> None:
        """
        Replace all values of ``attr``; with no values, remove the attribute.
        """
        values = to_values(value)
        if not values:
            self.delete(attr)
            return
        if attr in self.attrs:
            self.attrs[attr].clear()
        self.add(attr, values)
