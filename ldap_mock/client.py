from __future__ import annotations

import inspect
from collections.abc import Mapping
from functools import wraps
from typing import TYPE_CHECKING, Any, Protocol

import ldap

from .constants import DEFAULT_FILTER, ResultCode, Scope
from .db import MOD_OPS, CallHistory, TargetRegistry, ldap_error, mock_target
from .db import registry as default_registry
from .entry import Entry, attribute_pairs, to_values
from .filter import parse_filter
from .logging import logger
from .message import LDAPMessage, LDAPSearchMessage

if TYPE_CHECKING:
    from collections.abc import Callable

    import ldap.schema

    from .db import DirectoryTree
    from .types import Attributes, ChangeList, ResponseCallback


def record_call(func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Save a record of the call to ``func`` so that our tests can inspect it later.
    """

    @wraps(func)
    def inner(*args, **kwargs) -> Any:
        sig = inspect.signature(func)
        args_dict = dict(sig.bind(*args, **kwargs).arguments)
        args_dict["self"].calls.register(func.__name__, args_dict)
        del args_dict["self"]
        logger.debug("record_call api=%s, arguments=%s", func.__name__, args_dict)
        return func(*args, **kwargs)

    return inner


class LDAPClient(Protocol):
    """
    The directory operations shared by :py:class:`MockLDAP` and
    :py:class:`LDAPConnection`.  Code that only uses these can be handed
    either one.

    Every operation returns an :py:class:`LDAPMessage` (``search`` returns an
    :py:class:`LDAPSearchMessage`) instead of raising on failure, and calls
    ``callback``, if given, with that message before returning it.
    """

    def search(
        self,
        base: str | None = None,
        scope: str | int = "sub",
        filter: Any = DEFAULT_FILTER,  # noqa: A002
        attrs: list[str] | None = None,
        sizelimit: int = 0,
        typesonly: bool = False,
        callback: ResponseCallback | None = None,
        control: Any = None,
    ) -> LDAPSearchMessage: ...

    def compare(
        self,
        dn: str | Entry,
        attr: str | None = None,
        value: str | bytes | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,
    ) -> LDAPMessage: ...

    def add(
        self,
        dn: str | Entry,
        attrs: Attributes | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,
    ) -> LDAPMessage: ...

    def modify(
        self,
        dn: str | Entry,
        add: Mapping[str, Any] | None = None,
        delete: Mapping[str, Any] | list[str] | None = None,
        replace: Mapping[str, Any] | None = None,
        changes: ChangeList | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,
    ) -> LDAPMessage: ...

    def delete(
        self,
        dn: str | Entry,
        callback: ResponseCallback | None = None,
        control: Any = None,
    ) -> LDAPMessage: ...

    def moddn(
        self,
        dn: str | Entry,
        newrdn: str | None = None,
        deleteoldrdn: bool = False,
        newsuperior: str | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,
    ) -> LDAPMessage: ...

    def bind(
        self,
        dn: str | None = None,
        password: str | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,
        **kwargs: Any,
    ) -> LDAPMessage: ...

    def unbind(
        self, callback: ResponseCallback | None = None, control: Any = None
    ) -> LDAPMessage: ...

    def abandon(
        self,
        msgid: int | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,
    ) -> LDAPMessage: ...


class BaseLDAPClient:
    """
    Target parsing and response building shared by our two clients.

    Args:
        host: a host name, ``host:port``, or LDAP URI

    Keyword Args:
        port: the port to use when ``host`` has none
        scheme: ``ldap``, ``ldaps`` or ``ldapi``; overrides any scheme in ``host``
        **options: other connection options; kept in :py:attr:`options`

    """

    def __init__(
        self,
        host: str | list[str] | None = None,
        port: int | None = None,
        scheme: str | None = None,
        **options: Any,
    ) -> None:
        self.host = host
        self.port = port
        self.scheme = scheme
        self.options: dict[str, Any] = options  #: constructor options we don't use
        self.target: str = mock_target(host, port=port, scheme=scheme)  #: our target key
        self.calls: CallHistory = CallHistory()  #: the method call history

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.target!r})"

    def _respond(
        self,
        operation: str,
        func: Callable[[], LDAPMessage],
        callback: ResponseCallback | None = None,
        message_class: type[LDAPMessage] = LDAPMessage,
    ) -> Any:
        """
        Run ``func`` to build the response to ``operation``.  python-ldap
        exceptions raised by ``func`` become failure responses.  ``callback``
        is called with the response once it has been built.
        """
        try:
            mesg = func()
        except ldap.LDAPError as exc:
            mesg = message_class.from_exception(operation, exc)
        logger.debug(
            "%s.%s target=%s code=%s error=%s",
            self.__class__.__name__,
            operation,
            self.target,
            mesg.code,
            mesg.error,
        )
        if callback is not None:
            callback(mesg)
        return mesg

    @staticmethod
    def _dn(dn: str | Entry | None) -> str | None:
        if isinstance(dn, Entry):
            return dn.dn
        return dn

    @staticmethod
    def _changes(
        add: Mapping[str, Any] | None = None,
        delete: Mapping[str, Any] | list[str] | None = None,
        replace: Mapping[str, Any] | None = None,
        changes: ChangeList | None = None,
    ) -> ChangeList:
        """
        Flatten the ``add``/``delete``/``replace`` keyword forms of ``modify``
        into a change list, applied in that order, followed by ``changes``.

        Raises:
            ldap.PARAM_ERROR: one of the arguments is malformed

        """
        result: ChangeList = []
        try:
            for attr, values in attribute_pairs(add):
                result.append(("add", attr, values))
            if isinstance(delete, str):
                delete = [delete]
            if delete is not None and not isinstance(delete, Mapping):
                delete = [(item, None) if isinstance(item, str) else item for item in delete]
            for attr, values in attribute_pairs(delete):
                result.append(("delete", attr, values))
            for attr, values in attribute_pairs(replace):
                result.append(("replace", attr, values))
        except TypeError as exc:
            raise ldap_error(ldap.PARAM_ERROR, ResultCode.PARAM_ERROR, str(exc)) from exc  # type: ignore[attr-defined]
        result.extend(changes or [])
        return result


class MockLDAP(BaseLDAPClient):
    """
    A directory client that works against an in-memory
    :py:class:`DirectoryTree` instead of a server.

    Every :py:class:`MockLDAP` built for the same target (see
    :py:func:`mock_target`) shares one tree, so data added through one handle
    is seen by all of them:

        >>> ldap1 = MockLDAP('ldap.example.com')
        >>> ldap1.add('uid=user1,dc=example,dc=com', attrs={'sn': 'User'})
        >>> ldap2 = MockLDAP('ldap://ldap.example.com:389')
        >>> ldap2.search('dc=example,dc=com', scope='one', filter='(uid=*)').count()
        1

    Handles for other targets, including the same host on another port, get
    trees of their own.

    Args:
        host: a host name, ``host:port``, or LDAP URI

    Keyword Args:
        port: the port to use when ``host`` has none
        scheme: ``ldap``, ``ldaps`` or ``ldapi``
        registry: the :py:class:`TargetRegistry` to find our tree in; defaults
            to the process-wide :py:data:`ldap_mock.db.registry`
        **options: other connection options; accepted and ignored

    """

    def __init__(
        self,
        host: str | list[str] | None = None,
        port: int | None = None,
        scheme: str | None = None,
        registry: TargetRegistry | None = None,
        **options: Any,
    ) -> None:
        super().__init__(host, port=port, scheme=scheme, **options)
        self.registry: TargetRegistry = registry if registry is not None else default_registry
        self.tree: DirectoryTree = self.registry.resolve(self.target)  #: our shared tree

    @property
    def mock_data(self) -> DirectoryTree:
        """
        The :py:class:`DirectoryTree` shared by every handle on our target.
        """
        return self.tree

    def mock_schema(self, schema: ldap.schema.SubSchema | None = None) -> ldap.schema.SubSchema | None:
        """
        Get, or set, the schema of our tree.  The schema is only used to pick
        matching rules when evaluating search filters and ``compare``; it does
        not restrict ``add`` or ``modify``.

        Keyword Args:
            schema: if given, the new schema

        Returns:
            The tree's schema.

        """
        if schema is not None:
            self.tree.schema = schema
        return self.tree.schema

    def mock_bind(self, value: Any = None, message: str | None = None) -> None:
        """
        Set what ``bind`` returns on every handle for our target, until it is
        set again.

        Example:
            >>> conn.mock_bind(ResultCode.INVALID_CREDENTIALS)
            >>> conn.mock_bind((ResultCode.INVALID_CREDENTIALS, 'bad password'))
            >>> conn.mock_bind(
                lambda dn, password=None, **kw: None
                if password == 'secret' else ResultCode.INVALID_CREDENTIALS
            )
            >>> conn.mock_bind(ResultCode.SUCCESS)  # back to normal

        Keyword Args:
            value: a result code, a ``(code, message)`` tuple, an
                :py:class:`LDAPMessage`, a callable, or ``None``
            message: the message to use; for a callable, only used when it
                returns no message of its own

        """
        self.tree.overrides.set("bind", value, message)

    def mock_unbind(self, value: Any = None, message: str | None = None) -> None:
        """
        Set what ``unbind`` returns; see :py:meth:`mock_bind`.
        """
        self.tree.overrides.set("unbind", value, message)

    def mock_abandon(self, value: Any = None, message: str | None = None) -> None:
        """
        Set what ``abandon`` returns; see :py:meth:`mock_bind`.
        """
        self.tree.overrides.set("abandon", value, message)

    @record_call
    def search(
        self,
        base: str | None = None,
        scope: str | int = "sub",
        filter: Any = DEFAULT_FILTER,  # noqa: A002
        attrs: list[str] | None = None,
        sizelimit: int = 0,
        typesonly: bool = False,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPSearchMessage:
        """
        Search our tree.

        Example:
            >>> mesg = conn.search(
                'dc=example,dc=com', scope='sub', filter='(cn=*)', attrs=['uid', 'cn']
            )
            >>> [entry.dn for entry in mesg.entries]

        Args:
            base: the DN to search from; ``""`` searches the whole tree

        Keyword Args:
            scope: ``base``, ``one`` or ``sub`` (or an ``ldap.SCOPE_*`` value)
            filter: a filter string or :py:class:`ldap_filter.Filter`
            attrs: the attributes to return; ``None``, ``[]`` or ``['*']`` for
                all of them, ``['1.1']`` for none
            sizelimit: return at most this many entries; ``0`` for no limit
            typesonly: return attribute names but no values
            callback: called with the response
            control: ignored

        Returns:
            An :py:class:`LDAPSearchMessage`.  Its code is ``SUCCESS`` even
            when nothing matched, or ``SIZELIMIT_EXCEEDED`` if ``sizelimit``
            cut the results short.

        """

        def run() -> LDAPSearchMessage:
            entries = self.tree.search(base, scope, filter, attrs, typesonly=typesonly)
            code = ResultCode.SUCCESS
            if sizelimit and len(entries) > sizelimit:
                entries = entries[:sizelimit]
                code = ResultCode.SIZELIMIT_EXCEEDED
            return LDAPSearchMessage("search", code=code, entries=tuple(entries))

        return self._respond("search", run, callback, message_class=LDAPSearchMessage)

    @record_call
    def compare(
        self,
        dn: str | Entry,
        attr: str | None = None,
        value: str | bytes | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPMessage:
        """
        Test whether the entry ``dn`` has ``value`` among the values of
        ``attr``.

        Returns:
            An :py:class:`LDAPMessage` with code ``COMPARE_TRUE`` or
            ``COMPARE_FALSE``, or a failure code such as ``NO_SUCH_OBJECT``.

        """

        def run() -> LDAPMessage:
            found = self.tree.compare(self._dn(dn), attr, value if value is not None else "")
            return LDAPMessage(
                "compare", code=ResultCode.COMPARE_TRUE if found else ResultCode.COMPARE_FALSE
            )

        return self._respond("compare", run, callback)

    @record_call
    def add(
        self,
        dn: str | Entry,
        attrs: Attributes | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPMessage:
        """
        Add an entry.  ``dn`` may be an :py:class:`Entry`, in which case its
        attributes are used unless ``attrs`` is given.

        Example:
            >>> conn.add('uid=user1,dc=example,dc=com', attrs={
                'objectClass': ['top', 'person'],
                'sn': 'User',
                'cn': [b'User One'],
            })

        Returns:
            An :py:class:`LDAPMessage`; its code is ``PARAM_ERROR`` if ``dn``
            is empty, ``INVALID_DN_SYNTAX`` if it does not parse, or
            ``ALREADY_EXISTS`` if the entry is already there.

        """
        if isinstance(dn, Entry) and attrs is None:
            attrs = dn.as_dict()

        def run() -> LDAPMessage:
            self.tree.add(self._dn(dn), attrs)
            return LDAPMessage("add")

        return self._respond("add", run, callback)

    @record_call
    def modify(
        self,
        dn: str | Entry,
        add: Mapping[str, Any] | None = None,
        delete: Mapping[str, Any] | list[str] | None = None,
        replace: Mapping[str, Any] | None = None,
        changes: ChangeList | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPMessage:
        """
        Change the attributes of an entry.  ``add``, ``delete`` and
        ``replace`` are applied in that order, then ``changes``.  Either every
        change is applied or, on failure, none is.

        Example:
            >>> conn.modify(
                'uid=user1,dc=example,dc=com',
                add={'mail': 'user1@example.com'},
                delete=['gecos'],
                replace={'cn': 'User One'},
            )
            >>> conn.modify('uid=user1,dc=example,dc=com', changes=[
                ('delete', 'mail', 'user1@example.com'),
                (ldap.MOD_ADD, 'mail', 'u1@example.com'),
            ])

        Keyword Args:
            add: values to add, by attribute
            delete: values to remove, by attribute (``None`` or ``[]`` for
                the whole attribute), or a list of attributes to remove
            replace: new values, by attribute (``None`` or ``[]`` removes the
                attribute)
            changes: ``(op, attribute, values)`` tuples; see
                :py:meth:`DirectoryTree.modify`
            callback: called with the response
            control: ignored

        """

        def run() -> LDAPMessage:
            self.tree.modify(self._dn(dn), self._changes(add, delete, replace, changes))
            return LDAPMessage("modify")

        return self._respond("modify", run, callback)

    @record_call
    def delete(
        self,
        dn: str | Entry,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPMessage:
        """
        Delete an entry.  Entries below it are not touched.
        """

        def run() -> LDAPMessage:
            self.tree.delete(self._dn(dn))
            return LDAPMessage("delete")

        return self._respond("delete", run, callback)

    @record_call
    def moddn(
        self,
        dn: str | Entry,
        newrdn: str | None = None,
        deleteoldrdn: bool = False,
        newsuperior: str | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPMessage:
        """
        Rename an entry, and move every entry below it along with it.

        Example:
            >>> conn.moddn('ou=a,dc=example,dc=com', newrdn='ou=b')
            >>> conn.moddn('uid=1,ou=b,dc=example,dc=com', newrdn='uid=1',
                           newsuperior='ou=c,dc=example,dc=com')

        Keyword Args:
            newrdn: the new RDN of the entry
            deleteoldrdn: remove the values of the old RDN from the entry
            newsuperior: the DN of the new parent, if the entry is moving
            callback: called with the response
            control: ignored

        """

        def run() -> LDAPMessage:
            self.tree.rename(
                self._dn(dn), newrdn, delete_old_rdn=bool(deleteoldrdn), new_superior=newsuperior
            )
            return LDAPMessage("moddn")

        return self._respond("moddn", run, callback)

    @record_call
    def bind(
        self,
        dn: str | None = None,
        password: str | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
        **kwargs: Any,
    ) -> LDAPMessage:
        """
        Succeed, unless :py:meth:`mock_bind` says otherwise.  A callable
        installed with :py:meth:`mock_bind` is called as
        ``func(dn, password=password, **kwargs)``.
        """

        def run() -> LDAPMessage:
            code, text = self.tree.overrides.resolve("bind", dn, password=password, **kwargs)
            return LDAPMessage("bind", code=code, error=text)

        return self._respond("bind", run, callback)

    @record_call
    def unbind(
        self,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPMessage:
        """
        Succeed, unless :py:meth:`mock_unbind` says otherwise.
        """

        def run() -> LDAPMessage:
            code, text = self.tree.overrides.resolve("unbind")
            return LDAPMessage("unbind", code=code, error=text)

        return self._respond("unbind", run, callback)

    @record_call
    def abandon(
        self,
        msgid: int | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPMessage:
        """
        Succeed, unless :py:meth:`mock_abandon` says otherwise.  A callable
        installed with :py:meth:`mock_abandon` is called as ``func(msgid)``.
        """

        def run() -> LDAPMessage:
            code, text = self.tree.overrides.resolve("abandon", msgid)
            return LDAPMessage("abandon", code=code, error=text)

        return self._respond("abandon", run, callback)


class LDAPConnection(BaseLDAPClient):
    """
    A directory client that talks to a real server through python-ldap.  It
    has the same call surface as :py:class:`MockLDAP`, so code written
    against it can be tested by patching it with :py:class:`MockLDAP` (see
    :py:func:`ldap_mock.unittest.ldap_mockify`).

    The connection is opened lazily by python-ldap, on the first operation.

    Args:
        host: a host name, ``host:port``, or LDAP URI

    Keyword Args:
        port: the port to use when ``host`` has none
        scheme: ``ldap``, ``ldaps`` or ``ldapi``
        timeout: the network timeout, in seconds
        **options: other connection options; accepted and ignored

    """

    def __init__(
        self,
        host: str | list[str] | None = None,
        port: int | None = None,
        scheme: str | None = None,
        **options: Any,
    ) -> None:
        super().__init__(host, port=port, scheme=scheme, **options)
        self.uri: str = self.target  #: the LDAP URI we connect to
        self.conn = ldap.initialize(self.uri)  #: the python-ldap ``LDAPObject``
        self.conn.protocol_version = ldap.VERSION3  # type: ignore[attr-defined]
        if options.get("timeout") is not None:
            self.conn.set_option(ldap.OPT_NETWORK_TIMEOUT, options["timeout"])  # type: ignore[attr-defined]

    @staticmethod
    def _encode(values: Any) -> list[bytes]:
        return [v.encode("utf-8") for v in to_values(values)]

    @record_call
    def search(
        self,
        base: str | None = None,
        scope: str | int = "sub",
        filter: Any = DEFAULT_FILTER,  # noqa: A002
        attrs: list[str] | None = None,
        sizelimit: int = 0,
        typesonly: bool = False,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPSearchMessage:
        def run() -> LDAPSearchMessage:
            if base is None:
                raise ldap_error(ldap.PARAM_ERROR, ResultCode.PARAM_ERROR, "no search base specified")  # type: ignore[attr-defined]
            try:
                ldap_scope = Scope.coerce(scope)
            except ValueError as exc:
                raise ldap_error(ldap.PARAM_ERROR, ResultCode.PARAM_ERROR, str(exc)) from exc  # type: ignore[attr-defined]
            results = self.conn.search_ext_s(
                base,
                int(ldap_scope),
                parse_filter(filter).to_string(),
                attrlist=attrs or None,
                attrsonly=int(bool(typesonly)),
                sizelimit=sizelimit,
            )
            # Skip search references, which have no DN
            entries = tuple(Entry(dn, data) for dn, data in results if dn is not None)
            return LDAPSearchMessage("search", entries=entries)

        return self._respond("search", run, callback, message_class=LDAPSearchMessage)

    @record_call
    def compare(
        self,
        dn: str | Entry,
        attr: str | None = None,
        value: str | bytes | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPMessage:
        def run() -> LDAPMessage:
            found = self.conn.compare_s(self._dn(dn), attr, self._encode(value or "")[0])
            return LDAPMessage(
                "compare", code=ResultCode.COMPARE_TRUE if found else ResultCode.COMPARE_FALSE
            )

        return self._respond("compare", run, callback)

    @record_call
    def add(
        self,
        dn: str | Entry,
        attrs: Attributes | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPMessage:
        if isinstance(dn, Entry) and attrs is None:
            attrs = dn.as_dict()

        def run() -> LDAPMessage:
            try:
                modlist = [(name, self._encode(values)) for name, values in attribute_pairs(attrs)]
            except TypeError as exc:
                raise ldap_error(ldap.PARAM_ERROR, ResultCode.PARAM_ERROR, str(exc)) from exc  # type: ignore[attr-defined]
            self.conn.add_s(self._dn(dn), modlist)
            return LDAPMessage("add")

        return self._respond("add", run, callback)

    @record_call
    def modify(
        self,
        dn: str | Entry,
        add: Mapping[str, Any] | None = None,
        delete: Mapping[str, Any] | list[str] | None = None,
        replace: Mapping[str, Any] | None = None,
        changes: ChangeList | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPMessage:
        def run() -> LDAPMessage:
            ops = {"add": ldap.MOD_ADD, "delete": ldap.MOD_DELETE, "replace": ldap.MOD_REPLACE}  # type: ignore[attr-defined]
            modlist = []
            for op, attr, values in self._changes(add, delete, replace, changes):
                name = MOD_OPS.get(op.lower() if isinstance(op, str) else op)
                if name is None:
                    raise ldap_error(
                        ldap.PROTOCOL_ERROR,  # type: ignore[attr-defined]
                        ResultCode.PROTOCOL_ERROR,
                        "unrecognized modify operation",
                    )
                encoded = self._encode(values)
                modlist.append((ops[name], attr, encoded or None))
            self.conn.modify_s(self._dn(dn), modlist)
            return LDAPMessage("modify")

        return self._respond("modify", run, callback)

    @record_call
    def delete(
        self,
        dn: str | Entry,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPMessage:
        def run() -> LDAPMessage:
            self.conn.delete_s(self._dn(dn))
            return LDAPMessage("delete")

        return self._respond("delete", run, callback)

    @record_call
    def moddn(
        self,
        dn: str | Entry,
        newrdn: str | None = None,
        deleteoldrdn: bool = False,
        newsuperior: str | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPMessage:
        def run() -> LDAPMessage:
            self.conn.rename_s(
                self._dn(dn), newrdn, newsuperior=newsuperior, delold=int(bool(deleteoldrdn))
            )
            return LDAPMessage("moddn")

        return self._respond("moddn", run, callback)

    @record_call
    def bind(
        self,
        dn: str | None = None,
        password: str | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
        **kwargs: Any,  # noqa: ARG002
    ) -> LDAPMessage:
        def run() -> LDAPMessage:
            self.conn.simple_bind_s(dn or "", password or "")
            return LDAPMessage("bind")

        return self._respond("bind", run, callback)

    @record_call
    def unbind(
        self,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPMessage:
        def run() -> LDAPMessage:
            self.conn.unbind_s()
            return LDAPMessage("unbind")

        return self._respond("unbind", run, callback)

    @record_call
    def abandon(
        self,
        msgid: int | None = None,
        callback: ResponseCallback | None = None,
        control: Any = None,  # noqa: ARG002
    ) -> LDAPMessage:
        def run() -> LDAPMessage:
            if msgid is not None:
                self.conn.abandon(msgid)
            return LDAPMessage("abandon")

        return self._respond("abandon", run, callback)
