from __future__ import annotations

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, cast
from unittest.mock import patch

from .client import MockLDAP
from .constants import ResultCode
from .db import TargetRegistry, mock_target
from .db import registry as default_registry
from .message import LDAPMessage

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .types import LDAPFixtureList


def _code(value: LDAPMessage | int) -> int:
    if isinstance(value, LDAPMessage):
        return value.code
    return int(value)


def ldap_result_is(
    actual: LDAPMessage | int,
    expected: LDAPMessage | int = ResultCode.SUCCESS,
    name: str | None = None,
) -> LDAPMessage | int:
    """
    Check that the result code of ``actual`` is ``expected``.

    Example:
        >>> ldap_result_is(conn.add('uid=dup,dc=example,dc=com'), ResultCode.ALREADY_EXISTS)

    Args:
        actual: the response of an operation, or a result code
        expected: the response or result code we expect

    Keyword Args:
        name: a label for the check, used in the failure message

    Raises:
        AssertionError: the codes differ.  The message shows the code we got,
            with its name and error text, and the code we expected.

    Returns:
        ``actual``, so that the call can be wrapped around an operation.

    """
    actual_code = _code(actual)
    expected_code = _code(expected)
    if actual_code != expected_code:
        error = actual.error if isinstance(actual, LDAPMessage) else ""
        got = (
            f"{ResultCode.name_of(actual_code)} ({actual_code}): "
            f"{error or ResultCode.describe(actual_code)}"
        )
        want = f"{ResultCode.name_of(expected_code)} ({expected_code})"
        lines = [name] if name else []
        lines.append(f"{'got':>12}: {got}")
        lines.append(f"{'expected':>12}: {want}")
        raise AssertionError("\n".join(lines))
    return actual


def ldap_result_ok(actual: LDAPMessage | int, name: str | None = None) -> LDAPMessage | int:
    """
    Check that the result code of ``actual`` is ``SUCCESS``.  See
    :py:func:`ldap_result_is`.
    """
    return ldap_result_is(actual, ResultCode.SUCCESS, name=name)


@contextmanager
def ldap_mockify(
    modules: list[str], registry: TargetRegistry | None = None
) -> Iterator[TargetRegistry]:
    """
    Within the ``with`` block, replace ``LDAPConnection`` in each of
    ``modules`` with :py:class:`MockLDAP`, so that code which connects to a
    directory gets an in-memory one instead.

    Example:
        >>> with ldap_mockify(['myapp.directory']) as registry:
                myapp.directory.sync_users()
                tree = registry.get('ldap://ldap.example.com')

    Args:
        modules: python paths of modules that do
            ``from ldap_mock import LDAPConnection``

    Keyword Args:
        registry: the registry the mocks should use.  If not given, the
            process-wide :py:data:`ldap_mock.db.registry` is used, so data
            written in one block (or through a plain :py:class:`MockLDAP`)
            is still there in the next.

    Yields:
        The registry.

    """
    if registry is None:
        registry = default_registry
    mock_registry = registry

    def factory(*args: Any, **kwargs: Any) -> MockLDAP:
        kwargs.setdefault("registry", mock_registry)
        return MockLDAP(*args, **kwargs)

    patches = [patch(f"{mod}.LDAPConnection", factory) for mod in modules]
    for p in patches:
        p.start()
    try:
        yield registry
    finally:
        for p in reversed(patches):
            p.stop()


class LDAPMockMixin:
    """
    A mixin for use with :py:class:`unittest.TestCase`.  Properly configured,
    it will patch ``LDAPConnection`` in the modules you name with a factory
    for :py:class:`MockLDAP`, so your code talks to in-memory directories
    instead of real servers.

    :py:attr:`ldap_modules` is a list of python module paths in which we
    should patch ``LDAPConnection``.  For example::

        class TestMyStuff(LDAPMockMixin, unittest.TestCase):

            ldap_modules = ['myapp.module']

    will cause :py:class:`LDAPMockMixin` to patch ``myapp.module.LDAPConnection``.

    :py:attr:`ldap_fixtures` names one or more JSON or LDIF files holding
    entries to load.  It can be either a single string, a ``Tuple[str,
    List[str]]``, or a list of ``Tuple[str, str, List[str]]``.

    If we define our test class like so::

        class TestMyStuff(LDAPMockMixin, unittest.TestCase):

            ldap_fixtures = 'myfixture.json'

    every target your code connects to starts with the contents of
    ``myfixture.json``.  With ``('myfixture.json', ['audit'])``, those trees
    also get the tag ``audit``, which selects the
    :py:mod:`hooks <ldap_mock.hooks>` that apply to them.

    If we define our test class like this instead::

        class TestMyStuff(LDAPMockMixin, unittest.TestCase):

            ldap_fixtures = [
                ('server1.json', 'ldap://server1', []),
                ('server2.ldif', 'ldap://server2', ['audit']),
            ]

    ``ldap://server1`` starts with the data from ``server1.json``,
    ``ldap://server2`` with the data from ``server2.ldif``, and any other
    target starts empty.

    Fixtures are loaded once per class; each test gets its own copy, so changes
    made by one test are not seen by the next.
    """

    #: The list of python paths to modules that use ``LDAPConnection``
    ldap_modules: ClassVar[list[str]] = []
    ldap_fixtures: LDAPFixtureList | None = (
        None  #: The filenames of fixtures to load into our directory trees
    )

    def __init__(self, *args, **kwargs) -> None:
        #: The :py:class:`TargetRegistry` configured by our :py:meth:`setUpClass`
        self.ldap_registry: TargetRegistry
        #: The per-test copy of :py:attr:`ldap_registry` created by :py:meth:`setUp`
        self.registry: TargetRegistry
        #: :py:class:`MockLDAP` handles created by the code under test, in order
        self.connections: list[MockLDAP]
        self.patches: list[Any]
        self.check()
        super().__init__(*args, **kwargs)

    def check(self):
        """
        Run some sanity checks on how the user has configured us.

        :meta private:
        """
        if not self.ldap_modules:
            msg = (
                'Set the "ldap_modules" class variable to the list of python paths '
                'to modules in which we will need to patch "LDAPConnection".'
            )
            raise ValueError(msg)

    @classmethod
    def resolve_file(cls, filename: str) -> str:
        """
        Given ``filename``, if that filename is a non-absolute path, resolve
        that filename to an absolute path under the folder in which our
        subclass' file resides.  If ``filename`` is an absolute path, don't
        change it.

        Raises:
            FileNotFoundError: the fixture file did not exist

        Returns:
            The absolute path to the fixture file.

        """
        full_path = Path(filename)
        if not full_path.is_absolute():
            dirname = Path(cast("str", sys.modules[cls.__module__].__file__)).parent
            full_path = dirname / filename
        if not full_path.exists():
            msg = f"{full_path} does not exist"
            raise FileNotFoundError(msg)
        return str(full_path)

    @classmethod
    def load_targets(cls, registry: TargetRegistry) -> None:
        """
        Populate ``registry`` from :py:attr:`ldap_fixtures`.

        Note:
            If you want to populate your :py:class:`TargetRegistry` in a
            different way than loading directly from the files listed in
            :py:attr:`ldap_fixtures`, this is the classmethod you want to
            override.

        """
        if not cls.ldap_fixtures:
            return
        if isinstance(cls.ldap_fixtures, list):
            for filename, target, tags in cls.ldap_fixtures:
                registry.load_from_file(cls.resolve_file(filename), target=target, tags=tags)
        elif isinstance(cls.ldap_fixtures, tuple):
            filename, tags = cls.ldap_fixtures
            registry.load_from_file(cls.resolve_file(filename), tags=tags)
        else:
            registry.load_from_file(cls.resolve_file(cls.ldap_fixtures))

    @classmethod
    def setUpClass(cls):
        """
        Build the :py:class:`TargetRegistry` we'll use and save it as a class
        attribute, so that fixtures are parsed once per class.
        """
        super().setUpClass()  # type: ignore[misc]
        cls.ldap_registry = TargetRegistry()
        cls.load_targets(cls.ldap_registry)

    @classmethod
    def tearDownClass(cls):
        del cls.ldap_registry
        super().tearDownClass()  # type: ignore[misc]

    def setUp(self) -> None:
        """
        Copy :py:attr:`ldap_registry` into :py:attr:`registry` and
        :py:func:`patch <unittest.mock.patch>` ``LDAPConnection`` in each of
        the modules named in :py:attr:`ldap_modules`.
        """
        super().setUp()  # type: ignore[misc]
        self.registry = self.ldap_registry.copy()
        self.connections = []
        self.patches = []
        for mod in self.ldap_modules:
            conn_patch = patch(f"{mod}.LDAPConnection", self.connect)
            conn_patch.start()
            self.patches.append(conn_patch)

    def tearDown(self):
        """
        Undo the patches we made in :py:meth:`setUp`.
        """
        for p in self.patches:
            p.stop()
        super().tearDown()  # type: ignore[misc]

    # Helpers

    def connect(self, *args: Any, **kwargs: Any) -> MockLDAP:
        """
        Build a :py:class:`MockLDAP` on :py:attr:`registry`.  This is what
        ``LDAPConnection`` is replaced with.
        """
        kwargs.setdefault("registry", self.registry)
        conn = MockLDAP(*args, **kwargs)
        self.connections.append(conn)
        return conn

    def last_connection(self) -> MockLDAP | None:
        """
        Return the last :py:class:`MockLDAP` made during our test.
        """
        if self.connections:
            return self.connections[-1]
        return None

    def get_connections(self, target: str | None = None) -> list[MockLDAP]:
        """
        Return the :py:class:`MockLDAP` handles made during our test,
        optionally only those for ``target``.
        """
        if not target:
            return self.connections
        key = mock_target(target)
        return [conn for conn in self.connections if conn.target == key]

    # Asserts

    def assertLDAPResultOK(  # noqa: N802
        self, mesg: LDAPMessage | int, name: str | None = None
    ) -> LDAPMessage | int:
        """
        Assert that ``mesg`` is a success.  See :py:func:`ldap_result_ok`.
        """
        return ldap_result_ok(mesg, name=name)

    def assertLDAPResultIs(  # noqa: N802
        self,
        mesg: LDAPMessage | int,
        expected: LDAPMessage | int,
        name: str | None = None,
    ) -> LDAPMessage | int:
        """
        Assert that ``mesg`` has the result code of ``expected``.  See
        :py:func:`ldap_result_is`.
        """
        return ldap_result_is(mesg, expected, name=name)

    def assertLDAPMethodOK(  # noqa: N802
        self, conn: Any, method: str, *args: Any, **kwargs: Any
    ) -> LDAPMessage:
        """
        Call ``conn.method(*args, **kwargs)`` and assert that it succeeded.

        Example:
            >>> mesg = self.assertLDAPMethodOK(conn, 'search', 'dc=example,dc=com', filter='(cn=*)')

        Returns:
            The response.

        """
        return self.assertLDAPMethodIs(conn, method, ResultCode.SUCCESS, *args, **kwargs)

    def assertLDAPMethodIs(  # noqa: N802
        self,
        conn: Any,
        method: str,
        expected: LDAPMessage | int,
        *args: Any,
        **kwargs: Any,
    ) -> LDAPMessage:
        """
        Call ``conn.method(*args, **kwargs)`` and assert that its result code
        is ``expected``.

        Example:
            >>> self.assertLDAPMethodIs(
                conn, 'add', ResultCode.ALREADY_EXISTS, 'uid=dup,dc=example,dc=com'
            )

        Returns:
            The response.

        """
        mesg = getattr(conn, method)(*args, **kwargs)
        params = [repr(a) for a in args] + [f"{k}={v!r}" for k, v in kwargs.items()]
        ldap_result_is(mesg, expected, name=f"{method}({', '.join(params)})")
        return mesg

    def assertLDAPConnectionMethodCalled(  # noqa: N802
        self,
        conn: MockLDAP,
        api_name: str,
        arguments: dict[str, Any] | None = None,
    ) -> None:
        """
        Assert that a specific :py:class:`MockLDAP` method was called, possibly
        specifying the specific arguments it should have been called with.

        Args:
            conn: the connection object to examine
            api_name: the name of the method to look for (e.g. ``bind``)

        Keyword Args:
            arguments: if given, assert that the call exists AND was called
                with this set of arguments.  See :py:class:`LDAPCallRecord`
                for how the ``arguments`` dict should be constructed.

        """
        if not arguments:
            self.assertIn(api_name, conn.calls.names)  # type: ignore[attr-defined]
            return
        for call in conn.calls.filter_calls(api_name):
            if call.args == arguments:
                return
        msg = f'No call for "{api_name}" with args {arguments} found.'
        self.fail(msg)  # type: ignore[attr-defined]

    def assertLDAPConnectionMethodCalledAfter(  # noqa: N802
        self, conn: MockLDAP, api_name: str, target_api_name: str
    ) -> None:
        """
        Assert that a specific :py:class:`MockLDAP` method was called after
        another one.

        Args:
            conn: the connection object to examine
            api_name: the name of the method to look for (e.g. ``search``)
            target_api_name: the name of the method which should appear before
                ``api_name`` in the call history

        """
        self.assertLDAPConnectionMethodCalled(conn, target_api_name)
        self.assertLDAPConnectionMethodCalled(conn, api_name)
        api_names = conn.calls.names
        self.assertTrue(api_names.index(api_name) > api_names.index(target_api_name))  # type: ignore[attr-defined]
