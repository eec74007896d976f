__version__ = "0.1.0"

from .client import (
    BaseLDAPClient,
    LDAPClient,
    LDAPConnection,
    MockLDAP,
)
from .constants import DEFAULT_PORT, DEFAULT_SCHEME, ResultCode, Scope
from .db import (
    CallHistory,
    DirectoryTree,
    LDAPCallRecord,
    TargetRegistry,
    mock_target,
    registry,
)
from .entry import Entry
from .hooks import (
    Hook,
    HookDefinition,
    HookRegistry,
    hooks,
)
from .message import LDAPMessage, LDAPSearchMessage
from .types import LDAPData, LDAPRecord
from .unittest import LDAPMockMixin, ldap_mockify, ldap_result_is, ldap_result_ok
