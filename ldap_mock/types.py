from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from case_insensitive_dict import CaseInsensitiveDict

if TYPE_CHECKING:
    from .message import LDAPMessage

# ====================================
# Types
# ====================================

# Attribute values as accepted from callers, and as stored
RawValue = str | bytes
RawValues = RawValue | Sequence[RawValue] | None
AttrValues = list[str]

# LDAP records and entries
LDAPData = dict[str, list[str]]
CILDAPData = CaseInsensitiveDict[str, list[str]]
LDAPRecord = tuple[str, LDAPData]
Attributes = Mapping[str, RawValues] | Sequence[tuple[str, RawValues]]

# Modify change lists: (op, attribute, values), where op is "add", "delete",
# "replace" or one of the ldap.MOD_* integers
Change = tuple[str | int, str, RawValues]
ChangeList = list[Change]

# Callbacks
ResponseCallback = Callable[["LDAPMessage"], Any]
OverrideCallback = Callable[..., Any]

# unittest support
LDAPFixtureList = str | tuple[str, list[str]] | list[tuple[str, str, list[str]]]
