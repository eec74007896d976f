from __future__ import annotations

import json
import re
import threading
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote, urlsplit

import ldap
import ldif
from case_insensitive_dict import CaseInsensitiveDict

from .constants import DEFAULT_PORT, DEFAULT_SCHEME, ResultCode, Scope
from .dn import (
    canonical_dn,
    depth_below,
    dn_key,
    explode,
    parse_dn,
    rdn_values,
    replace_suffix,
    split_rdn,
    to_str,
)
from .entry import Entry, attribute_pairs
from .filter import FilterEvaluator, parse_filter
from .hooks import hooks
from .logging import logger
from .overrides import SessionOverrides

if TYPE_CHECKING:
    import ldap.schema

    from .types import Attributes, ChangeList, LDAPRecord

_PORT_RE: re.Pattern[str] = re.compile(r":\d+$")

#: Map of the modify operation names and ``ldap.MOD_*`` codes we accept
MOD_OPS: dict[str | int, str] = {
    "add": "add",
    "delete": "delete",
    "replace": "replace",
    ldap.MOD_ADD: "add",  # type: ignore[attr-defined]
    ldap.MOD_DELETE: "delete",  # type: ignore[attr-defined]
    ldap.MOD_REPLACE: "replace",  # type: ignore[attr-defined]
}


def ldap_error(
    exc_class: type[ldap.LDAPError], code: ResultCode, info: str = "", matched: str = ""
) -> ldap.LDAPError:
    """
    Build a python-ldap exception carrying the same details a real server
    response would.
    """
    return exc_class(
        {"result": int(code), "desc": code.description, "info": info, "matched": matched}
    )


def refusal(code: int, info: str) -> ldap.LDAPError:
    """
    Build the python-ldap exception for an arbitrary result ``code``, as
    returned by a ``pre_*`` hook.  Codes python-ldap has no class for are
    raised as plain :py:class:`ldap.LDAPError`.
    """
    exc_class = getattr(ldap, ResultCode.name_of(code), None)
    if not (isinstance(exc_class, type) and issubclass(exc_class, ldap.LDAPError)):
        exc_class = ldap.LDAPError
    return exc_class(
        {"result": code, "desc": ResultCode.describe(code), "info": info, "matched": ""}
    )


def mock_target(
    host: str | list[str] | None = None, port: int | None = None, scheme: str | None = None
) -> str:
    """
    Compute the key under which the directory tree for a connection target is
    shared.  Handles pointed at the same key see the same data.

    * ``host`` may be a bare host, ``host:port``, or an LDAP URI
      (``ldap://host:port``, ``ldaps://host``, ``ldapi://%2Fpath%2Fto%2Fsocket``).
      A list of hosts uses the first one.
    * Without an explicit port, port :py:data:`DEFAULT_PORT` is assumed,
      except for ``ldapi``, which has a path instead.
    * Scheme and host are lower-cased.

    Example:
        >>> mock_target('LDAP.example.com')
        'ldap://ldap.example.com:389'
        >>> mock_target('ldap.example.com', port=3389)
        'ldap://ldap.example.com:3389'
        >>> mock_target('ldapi://%2Fvar%2Frun%2Fslapd.sock')
        'ldapi:///var/run/slapd.sock'

    """
    if isinstance(host, (list, tuple)):
        host = host[0] if host else None
    target = (host or "").strip()
    if "://" in target:
        parsed = urlsplit(target)
        scheme = scheme or parsed.scheme
        target = unquote(parsed.netloc)
        if not target and scheme.lower() == "ldapi":
            target = unquote(parsed.path)
    scheme = (scheme or DEFAULT_SCHEME).lower()
    if target and scheme != "ldapi":
        if not _PORT_RE.search(target):
            target = f"{target}:{port or DEFAULT_PORT}"
        target = target.lower()
    return f"{scheme}://{target}"


@dataclass
class LDAPCallRecord:
    """
    A single LDAP call record, used by :py:class:`CallHistory` to store
    information about calls to :py:class:`MockLDAP` methods.

    :py:attr:`api_name` is the name of the method called (e.g. ``bind``,
    ``search``).

    :py:attr:`args` is the argument list of the call, including defaults for
    keyword arguments not passed.  This is a dict where the key is the name of
    the positional or keyword argument, and the value is the passed in (or
    default) value for that argument.

    Example:
        If we make this call to a :py:class:`MockLDAP`::

            conn.search('ou=bar,o=baz,c=country', scope='one', filter='(uid=foo)')

        This will be recorded as::

            LDAPCallRecord(
                api_name='search',
                args={
                    'base': 'ou=bar,o=baz,c=country',
                    'scope': 'one',
                    'filter': '(uid=foo)',
                }
            )

    """

    api_name: str  #: the name LDAP api call
    args: dict[str, Any]  #: the args and kwargs dict


class CallHistory:
    """
    Records the call history of a :py:class:`MockLDAP` handle as
    :py:class:`LDAPCallRecord` objects.  It works in conjunction with the
    ``@record_call`` decorator.

    We use this in our tests with appropriate asserts to ensure that our code
    called the methods we expected, in the order we expected, with the
    arguments we expected.
    """

    def __init__(self, calls: list[LDAPCallRecord] | None = None):
        self._calls: list[LDAPCallRecord] = []
        if calls:
            self._calls = calls

    def register(self, api_name: str, arguments: dict[str, Any]) -> None:
        """
        Register a new call record.

        :meta private:
        """
        self._calls.append(LDAPCallRecord(api_name, arguments))

    def filter_calls(self, api_name: str) -> list[LDAPCallRecord]:
        """
        Filter our call history by method name.

        Args:
            api_name: look through our history for calls to this method

        Returns:
            The matching :py:class:`LDAPCallRecord` objects, in call order.

        """
        return [call for call in self._calls if call.api_name == api_name]

    @property
    def calls(self) -> list[LDAPCallRecord]:
        """
        Returns the list of all calls made against the parent object.
        """
        return self._calls

    @property
    def names(self) -> list[str]:
        """
        Returns the names of the methods called, in the order they were called.

        Example:
            To test that your code did at least one ``add``::

                self.assertIn('add', conn.calls.names)

        """
        return [call.api_name for call in self._calls]


class DirectoryTree:
    """
    The in-memory directory behind one connection target: the entries, plus
    the schema and session overrides shared by every handle on that target.

    Entries are kept in insertion order, keyed case-insensitively by
    :py:func:`ldap_mock.dn.dn_key`, so the order of the values in a
    multi-valued RDN does not matter for lookups.  Each entry keeps its DN as
    it was given.  Parent/child relationships are never stored; they are
    derived from the DNs.  No parent needs to exist for an entry to be added.

    Every method that reads or changes the entries holds :py:attr:`lock`.

    Failures are raised as python-ldap exceptions (``ldap.NO_SUCH_OBJECT``,
    ``ldap.ALREADY_EXISTS`` etc.) whose ``result`` is the LDAP result code;
    :py:class:`MockLDAP` turns them into response messages.

    Keyword Args:
        tags: tags used to select which :py:mod:`hooks <ldap_mock.hooks>` apply

    """

    def __init__(self, tags: list[str] | None = None) -> None:
        self.entries: CaseInsensitiveDict[str, Entry] = CaseInsensitiveDict()  #: DN -> Entry
        self.tags: list[str] = tags if tags is not None else []  #: used when filtering hooks
        self.lock: threading.RLock = threading.RLock()  #: serializes access to entries
        self.schema: ldap.schema.SubSchema | None = None  #: used only by search filters
        self.overrides: SessionOverrides = SessionOverrides()  #: bind/unbind/abandon
        self._run_hooks("post_tree_init")

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def count(self) -> int:
        return len(self.entries)

    # Helpers

    def _canonical(self, dn: Any) -> str:
        """
        Validate ``dn`` and return its canonical form.

        Raises:
            ldap.PARAM_ERROR: ``dn`` is missing or empty
            ldap.INVALID_DN_SYNTAX: ``dn`` is not well formed

        """
        if dn is None or (isinstance(dn, str) and not dn.strip()):
            raise ldap_error(ldap.PARAM_ERROR, ResultCode.PARAM_ERROR, "no DN specified")  # type: ignore[attr-defined]
        return canonical_dn(dn)

    def _matched(self, dn: str) -> str:
        """
        Return the DN of the closest existing ancestor of ``dn``, or ``""``.
        """
        parts = parse_dn(dn, sort=True)
        for i in range(1, len(parts)):
            ancestor = to_str(parts[i:])
            if ancestor in self.entries:
                return self.entries[ancestor].dn
        return ""

    def _run_hooks(self, hook_name: str, *args: Any) -> None:
        """
        Run the ``hook_name`` hooks that apply to this tree.

        Raises:
            ldap.LDAPError: a ``pre_*`` hook refused the change.  The
                exception carries the result code the hook returned.

        """
        refused = hooks.run(hook_name, self.tags, self, *args)
        if refused is not None:
            code, info = refused
            logger.debug("tree.%s refused code=%d", hook_name, code)
            raise refusal(code, info or f"refused by {hook_name} hook")

    def _no_such_object(self, dn: str) -> ldap.LDAPError:
        return ldap_error(
            ldap.NO_SUCH_OBJECT,  # type: ignore[attr-defined]
            ResultCode.NO_SUCH_OBJECT,
            f"no such entry: {dn}",
            matched=self._matched(dn),
        )

    # Tree primitives

    def exists(self, dn: str) -> bool:
        """
        Test whether an entry with DN ``dn`` exists.

        Raises:
            ldap.INVALID_DN_SYNTAX: ``dn`` is not well formed

        """
        with self.lock:
            return dn_key(dn) in self.entries

    def get(self, dn: str) -> Entry:
        """
        Return the stored :py:class:`Entry` for ``dn``.  Use :py:meth:`copy`
        if you are going to change it.

        Raises:
            ldap.INVALID_DN_SYNTAX: ``dn`` is not well formed
            ldap.NO_SUCH_OBJECT: there is no entry with DN ``dn``

        """
        with self.lock:
            try:
                return self.entries[dn_key(dn)]
            except KeyError as exc:
                raise self._no_such_object(canonical_dn(dn)) from exc

    def copy_entry(self, dn: str) -> Entry:
        return self.get(dn).copy()

    def put(self, entry: Entry) -> None:
        """
        Store ``entry``, replacing any entry with the same DN in place.  No
        hooks are run and no existence checks are made.

        Raises:
            ldap.INVALID_DN_SYNTAX: the entry's DN is not well formed

        """
        with self.lock:
            entry.dn = canonical_dn(entry.dn)
            self.entries[dn_key(entry.dn)] = entry

    def remove(self, dn: str) -> Entry:
        """
        Remove the entry with DN ``dn`` and return it.  No hooks are run.

        Raises:
            ldap.INVALID_DN_SYNTAX: ``dn`` is not well formed
            ldap.NO_SUCH_OBJECT: there is no entry with DN ``dn``

        """
        with self.lock:
            entry = self.get(dn)
            del self.entries[dn_key(entry.dn)]
            return entry

    def iterate(self) -> list[Entry]:
        """
        Return every entry, in insertion order.
        """
        with self.lock:
            return list(self.entries.values())

    def copy(self) -> DirectoryTree:
        """
        Return an independent copy of this tree: same tags, schema and
        entries, but fresh overrides and its own lock.
        """
        with self.lock:
            tree = DirectoryTree(tags=list(self.tags))
            tree.schema = self.schema
            for key, entry in self.entries.items():
                tree.entries[key] = entry.copy()
        return tree

    # Fixture loading

    def load_objects(self, filename: str | Path) -> None:
        """
        Load entries stored as JSON from a file.  The file must hold a list of
        ``[dn, {attribute: [values]}]`` pairs.

        Raises:
            ldap.ALREADY_EXISTS: there is already an entry with one of the DNs
            ldap.INVALID_DN_SYNTAX: one of the DNs is not well formed

        """
        self._run_hooks("pre_load_objects", str(filename))
        with Path(filename).open(encoding="utf-8") as fd:
            objects = json.load(fd)
        for dn, data in objects:
            self.register_object((dn, data))
        self._run_hooks("post_load_objects")

    def load_ldif(self, filename: str | Path) -> None:
        """
        Load the content records of an LDIF file.

        Raises:
            ldap.ALREADY_EXISTS: there is already an entry with one of the DNs
            ldap.INVALID_DN_SYNTAX: one of the DNs is not well formed

        """
        self._run_hooks("pre_load_objects", str(filename))
        with Path(filename).open(encoding="utf-8") as fd:
            parser = ldif.LDIFRecordList(fd)
            parser.parse()
        for dn, data in parser.all_records:
            self.register_object((dn, data))
        self._run_hooks("post_load_objects")

    def register_objects(self, objs: list[LDAPRecord]) -> None:
        """
        Add a list of ``(dn, attributes)`` records.  Use this when setting up
        the data you will use to run your tests.

        Example:
            >>> tree = DirectoryTree()
            >>> tree.register_objects([
                ('ou=users,dc=example,dc=com', {'objectClass': ['organizationalUnit']}),
                ('uid=user1,ou=users,dc=example,dc=com', {'cn': ['User One']}),
            ])

        Raises:
            ldap.ALREADY_EXISTS: there is already an entry with one of the DNs
            ldap.INVALID_DN_SYNTAX: one of the DNs is not well formed

        """
        for obj in objs:
            self.register_object(obj)

    def register_object(self, obj: LDAPRecord) -> None:
        self.add(obj[0], obj[1])

    # Mutations

    def add(self, dn: str, attrs: Attributes | None = None) -> Entry:
        """
        Create an entry.  The values of the entry's RDN are added to its
        attributes if they are not there already.

        Args:
            dn: the DN of the new entry

        Keyword Args:
            attrs: a mapping, or sequence of ``(name, values)`` pairs

        Raises:
            ldap.PARAM_ERROR: ``dn`` is missing, or ``attrs`` is malformed
            ldap.INVALID_DN_SYNTAX: ``dn`` is not well formed
            ldap.ALREADY_EXISTS: an entry with DN ``dn`` already exists

        Returns:
            The new entry.

        """
        canonical = self._canonical(dn)
        if not canonical:
            raise ldap_error(ldap.PARAM_ERROR, ResultCode.PARAM_ERROR, "no DN specified")  # type: ignore[attr-defined]
        try:
            entry = Entry(canonical, attrs)
        except TypeError as exc:
            raise ldap_error(ldap.PARAM_ERROR, ResultCode.PARAM_ERROR, str(exc)) from exc  # type: ignore[attr-defined]
        for attr, value in rdn_values(split_rdn(canonical)[0]):
            if not entry.has_value(attr, value):
                entry.add(attr, value)
        key = dn_key(canonical)
        with self.lock:
            if key in self.entries:
                raise ldap_error(
                    ldap.ALREADY_EXISTS,  # type: ignore[attr-defined]
                    ResultCode.ALREADY_EXISTS,
                    f"entry already exists: {canonical}",
                )
            self._run_hooks("pre_add", entry)
            self.entries[key] = entry
            logger.debug("tree.add dn=%s", canonical)
            self._run_hooks("post_add", entry)
        return entry

    def modify(self, dn: str, changes: ChangeList) -> Entry:
        """
        Apply ``changes`` to the entry with DN ``dn``, all or nothing.

        Each change is an ``(op, attribute, values)`` tuple, where ``op`` is
        ``add``, ``delete`` or ``replace`` (or :py:data:`ldap.MOD_ADD`,
        :py:data:`ldap.MOD_DELETE`, :py:data:`ldap.MOD_REPLACE`).  Deleting
        values or attributes that are not there is not an error, and adding a
        value that is already there appends it again.  ``delete`` or ``replace``
        with no values removes the attribute.

        Example:
            >>> tree.modify('uid=user1,dc=example,dc=com', [
                ('add', 'mail', ['user1@example.com']),
                ('replace', 'cn', 'User One'),
                ('delete', 'gecos', None),
            ])

        Raises:
            ldap.PARAM_ERROR: ``dn`` is missing, or a change is malformed
            ldap.INVALID_DN_SYNTAX: ``dn`` is not well formed
            ldap.NO_SUCH_OBJECT: there is no entry with DN ``dn``
            ldap.PROTOCOL_ERROR: a change has an unknown operation

        Returns:
            The modified entry.

        """
        canonical = self._canonical(dn)
        with self.lock:
            entry = self.get(canonical)
            self._run_hooks("pre_modify", entry.dn, changes)
            # Work on a copy so that a bad change leaves the entry untouched
            working = entry.copy()
            for change in changes:
                try:
                    op, attr, values = change
                except (TypeError, ValueError) as exc:
                    raise ldap_error(
                        ldap.PARAM_ERROR,  # type: ignore[attr-defined]
                        ResultCode.PARAM_ERROR,
                        f"malformed change: {change!r}",
                    ) from exc
                if isinstance(op, str):
                    op = op.lower()
                if op not in MOD_OPS:
                    raise ldap_error(
                        ldap.PROTOCOL_ERROR,  # type: ignore[attr-defined]
                        ResultCode.PROTOCOL_ERROR,
                        "unrecognized modify operation",
                    )
                try:
                    for name, value in attribute_pairs([(attr, values)]):
                        getattr(working, MOD_OPS[op])(name, value)
                except TypeError as exc:
                    raise ldap_error(ldap.PARAM_ERROR, ResultCode.PARAM_ERROR, str(exc)) from exc  # type: ignore[attr-defined]
            self.entries[dn_key(entry.dn)] = working
            logger.debug("tree.modify dn=%s changes=%d", entry.dn, len(changes))
            self._run_hooks("post_modify", working)
        return working

    def delete(self, dn: str) -> Entry:
        """
        Delete the entry with DN ``dn``.  Entries below it are left alone.

        Raises:
            ldap.PARAM_ERROR: ``dn`` is missing
            ldap.INVALID_DN_SYNTAX: ``dn`` is not well formed
            ldap.NO_SUCH_OBJECT: there is no entry with DN ``dn``

        Returns:
            The deleted entry.

        """
        canonical = self._canonical(dn)
        with self.lock:
            entry = self.get(canonical)
            self._run_hooks("pre_delete", entry)
            del self.entries[dn_key(entry.dn)]
            logger.debug("tree.delete dn=%s", entry.dn)
            self._run_hooks("post_delete", entry)
        return entry

    def rename(
        self,
        dn: str,
        newrdn: str,
        delete_old_rdn: bool = False,
        new_superior: str | None = None,
    ) -> Entry:
        """
        Change the RDN of the entry with DN ``dn`` to ``newrdn``, optionally
        moving it under ``new_superior``.  Every entry below it moves with
        it; their own RDNs are unchanged, and the tree's order is kept.

        The values of the new RDN are added to the entry.  If
        ``delete_old_rdn`` is set, the values of the old RDN are removed.

        Example:
            >>> tree.rename('ou=a,dc=x', 'ou=b')

            moves ``uid=1,ou=a,dc=x`` to ``uid=1,ou=b,dc=x``.

        Raises:
            ldap.PARAM_ERROR: ``dn`` or ``newrdn`` is missing
            ldap.INVALID_DN_SYNTAX: ``dn``, ``newrdn`` or ``new_superior`` is
                not well formed
            ldap.NO_SUCH_OBJECT: there is no entry with DN ``dn``
            ldap.ALREADY_EXISTS: an entry already exists at the new DN, or at
                the new DN of one of the entries below it
            ldap.UNWILLING_TO_PERFORM: ``new_superior`` is inside the subtree
                being moved

        Returns:
            The renamed entry.

        """
        old_dn = self._canonical(dn)
        with self.lock:
            entry = self.get(old_dn)
            new_rdn = self._canonical(newrdn)
            new_rdn_values = rdn_values(new_rdn)
            old_dn = entry.dn
            old_key = dn_key(old_dn)
            rdn, parent = split_rdn(old_dn)
            if new_superior is not None:
                parent = canonical_dn(new_superior)
            new_dn = canonical_dn(f"{new_rdn},{parent}" if parent else new_rdn)
            old_parts = explode(old_dn)
            new_parts = explode(new_dn)
            if new_parts != old_parts and depth_below(new_parts, old_parts) is not None:
                raise ldap_error(
                    ldap.UNWILLING_TO_PERFORM,  # type: ignore[attr-defined]
                    ResultCode.UNWILLING_TO_PERFORM,
                    "cannot move an entry below itself",
                )
            # key -> new DN, for the entry and everything below it
            moves: dict[str, str] = {}
            for key, current in self.entries.items():
                depth = depth_below(explode(key), old_parts)
                if depth is not None:
                    moves[key.lower()] = (
                        new_dn if depth == 0 else replace_suffix(current.dn, old_dn, new_dn)
                    )
            for target in moves.values():
                target_key = dn_key(target)
                if target_key.lower() not in moves and target_key in self.entries:
                    raise ldap_error(
                        ldap.ALREADY_EXISTS,  # type: ignore[attr-defined]
                        ResultCode.ALREADY_EXISTS,
                        f"entry already exists: {target}",
                    )
            self._run_hooks("pre_rename", old_dn, new_dn)
            renamed = entry.copy()
            if delete_old_rdn:
                for attr, value in rdn_values(rdn):
                    renamed.delete(attr, value)
            for attr, value in new_rdn_values:
                if not renamed.has_value(attr, value):
                    renamed.add(attr, value)
            rebuilt: CaseInsensitiveDict[str, Entry] = CaseInsensitiveDict()
            for key, current in self.entries.items():
                if key.lower() not in moves:
                    rebuilt[key] = current
                    continue
                moved = renamed if key.lower() == old_key.lower() else current.copy()
                moved.dn = moves[key.lower()]
                rebuilt[dn_key(moved.dn)] = moved
            self.entries = rebuilt
            logger.debug("tree.rename dn=%s new_dn=%s moved=%d", old_dn, new_dn, len(moves))
            self._run_hooks("post_rename", renamed)
        return renamed

    # Reads

    def compare(
        self, dn: str, attr: str, value: str | bytes, evaluator: FilterEvaluator | None = None
    ) -> bool:
        """
        Test whether the ``attr`` attribute of the entry with DN ``dn`` holds
        ``value``, using the equality matching rule of ``attr`` (case-insensitive
        unless :py:attr:`schema` says otherwise).

        Raises:
            ldap.PARAM_ERROR: ``dn`` or ``attr`` is missing
            ldap.INVALID_DN_SYNTAX: ``dn`` is not well formed
            ldap.NO_SUCH_OBJECT: there is no entry with DN ``dn``

        """
        canonical = self._canonical(dn)
        if not attr or not isinstance(attr, str):
            raise ldap_error(ldap.PARAM_ERROR, ResultCode.PARAM_ERROR, "no attribute specified")  # type: ignore[attr-defined]
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        if evaluator is None:
            evaluator = FilterEvaluator(self.schema)
        with self.lock:
            return evaluator.equals(self.get(canonical), attr, str(value))

    def search(
        self,
        base: str,
        scope: Scope | str | int = Scope.SUB,
        filterstr: Any = None,
        attrlist: list[str] | None = None,
        typesonly: bool = False,
    ) -> list[Entry]:
        """
        Return copies of the entries within ``scope`` of ``base`` that match
        ``filterstr``, in insertion order, reduced to the attributes named in
        ``attrlist``.

        * ``base``: only the entry at ``base`` itself
        * ``one``: only the entries exactly one RDN below ``base``
        * ``sub``: the entry at ``base`` and every entry below it

        ``base`` need not exist; an empty result is not an error.  The root
        DN ``""`` is the base of the whole tree.

        Args:
            base: the base DN of the search

        Keyword Args:
            scope: the scope of the search
            filterstr: a filter string or :py:class:`ldap_filter.Filter`
            attrlist: the attributes to return; see :py:meth:`Entry.project`
            typesonly: return attribute names without values

        Raises:
            ldap.PARAM_ERROR: ``base`` is ``None`` or ``scope`` is not a scope
            ldap.INVALID_DN_SYNTAX: ``base`` is not well formed
            ldap.FILTER_ERROR: ``filterstr`` is not a valid filter

        """
        if base is None:
            raise ldap_error(ldap.PARAM_ERROR, ResultCode.PARAM_ERROR, "no search base specified")  # type: ignore[attr-defined]
        try:
            scope = Scope.coerce(scope)
        except ValueError as exc:
            raise ldap_error(ldap.PARAM_ERROR, ResultCode.PARAM_ERROR, str(exc)) from exc  # type: ignore[attr-defined]
        base_parts = explode(base)
        filt = parse_filter(filterstr)
        evaluator = FilterEvaluator(self.schema)
        results: list[Entry] = []
        with self.lock:
            for dn, entry in self.entries.items():
                depth = depth_below(explode(dn), base_parts)
                if depth is None:
                    continue
                if (scope == Scope.BASE and depth != 0) or (scope == Scope.ONE and depth != 1):
                    continue
                if evaluator.matches(filt, entry):
                    results.append(entry.project(attrlist, typesonly=typesonly))
        return results


class TargetRegistry:
    """
    Maps connection targets (see :py:func:`mock_target`) to the
    :py:class:`DirectoryTree` shared by every handle on that target.

    A tree is created, empty, the first time a target is resolved, and lives
    until the registry is :py:meth:`reset`.  If a :py:attr:`default` tree is
    configured, new trees start as copies of it instead; each target still
    gets its own tree.

    Example:
        To give ``ldap://server1`` some data before the code under test
        connects to it:

        >>> registry = TargetRegistry()
        >>> tree = DirectoryTree()
        >>> tree.load_objects('server1.json')
        >>> registry.register(tree, 'ldap://server1')

    """

    def __init__(self, default: DirectoryTree | None = None) -> None:
        self.trees: dict[str, DirectoryTree] = {}  #: target key -> tree
        self.default: DirectoryTree | None = default  #: template for new trees
        self._lock: threading.Lock = threading.Lock()

    @property
    def targets(self) -> list[str]:
        with self._lock:
            return list(self.trees)

    def resolve(self, target: str) -> DirectoryTree:
        """
        Return the tree for ``target``, creating it if this is the first time
        we have seen ``target``.

        Args:
            target: a target key, or anything :py:func:`mock_target` accepts

        """
        key = mock_target(target)
        with self._lock:
            if key not in self.trees:
                self.trees[key] = self.default.copy() if self.default else DirectoryTree()
                logger.debug("registry.create target=%s", key)
            return self.trees[key]

    def get(self, target: str) -> DirectoryTree | None:
        with self._lock:
            return self.trees.get(mock_target(target))

    def register(self, tree: DirectoryTree, target: str | None = None) -> None:
        """
        Use ``tree`` for ``target``.  With no ``target``, make ``tree`` the
        template that every new target's tree is copied from.

        Raises:
            RuntimeWarning: ``target`` (or the default) already had a tree

        """
        with self._lock:
            if not target:
                if self.default is not None:
                    warnings.warn(
                        "TargetRegistry: overriding existing default DirectoryTree",
                        RuntimeWarning,
                        stacklevel=2,
                    )
                self.default = tree
                return
            key = mock_target(target)
            if key in self.trees:
                warnings.warn(
                    f"TargetRegistry: overriding existing DirectoryTree for target={key}",
                    RuntimeWarning,
                    stacklevel=2,
                )
            self.trees[key] = tree

    def load_from_file(
        self, filename: str | Path, target: str | None = None, tags: list[str] | None = None
    ) -> DirectoryTree:
        """
        Build a :py:class:`DirectoryTree` from a JSON (or, for ``.ldif`` files,
        LDIF) fixture file and :py:meth:`register` it for ``target``.

        Keyword Args:
            target: the target to use the tree for; ``None`` for the default
            tags: the tags to apply to the tree

        """
        tree = DirectoryTree(tags=tags or [])
        if Path(filename).suffix.lower() == ".ldif":
            tree.load_ldif(filename)
        else:
            tree.load_objects(filename)
        self.register(tree, target=target)
        return tree

    def copy(self) -> TargetRegistry:
        """
        Return a registry holding independent copies of all our trees.
        """
        with self._lock:
            registry = TargetRegistry(default=self.default.copy() if self.default else None)
            for key, tree in self.trees.items():
                registry.trees[key] = tree.copy()
        return registry

    def reset(self) -> None:
        """
        Forget every tree, including the default.
        """
        with self._lock:
            self.trees.clear()
            self.default = None


#: The process-wide registry used by handles that aren't given one
registry = TargetRegistry()
