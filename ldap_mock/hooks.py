"""
Points at which a :py:class:`ldap_mock.db.DirectoryTree` calls out to user
code while it changes its entries.

Each mutation fires ``pre_<op>`` once its own checks have passed and before
anything is stored, then ``post_<op>`` once the change is in place.  A
``pre_<op>`` function can stand in for a server-side policy: if it returns a
non-zero LDAP result code, or a ``(code, message)`` pair, the operation stops
there and the client reports that code.  Returning ``None`` (or ``0``) lets
the operation go ahead.  What ``post_<op>`` functions and ``post_tree_init``
return is ignored.

Example:
    Refuse to delete anything under ``ou=protected``::

        from ldap_mock import ResultCode, hooks

        def protect(tree, entry):
            if entry.dn.lower().endswith('ou=protected,dc=example,dc=com'):
                return ResultCode.UNWILLING_TO_PERFORM, 'protected entry'
            return None

        hooks.register_hook('pre_delete', protect)

Functions registered with tags only fire for trees that carry one of those
tags; untagged functions fire for every tree.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

#: ``(result code, diagnostic message)`` returned by a refusing ``pre_*`` hook
Refusal = tuple[int, str]


@dataclass(frozen=True)
class HookDefinition:
    """
    A named hook point and the signature its functions must have.

    Attributes:
        name: e.g. ``pre_add``
        signature: a type annotation string such as
            ``"Callable[[DirectoryTree, Entry], int | None]"``

    """

    name: str
    signature: str

    @property
    def can_refuse(self) -> bool:
        """
        ``True`` for ``pre_*`` points, whose functions may stop the operation.
        """
        return self.name.startswith("pre_")


@dataclass
class Hook:
    """
    One registered function, and the tree tags it is limited to.
    """

    func: Callable[..., Any]
    tags: frozenset[str] = field(default_factory=frozenset)

    def applies_to(self, tags: Iterable[str]) -> bool:
        return not self.tags or not self.tags.isdisjoint(tags)


def as_refusal(result: Any) -> Refusal | None:
    """
    Interpret what a ``pre_*`` function returned.

    Example:
        >>> as_refusal(None)
        >>> as_refusal(ResultCode.UNWILLING_TO_PERFORM)
        (53, '')
        >>> as_refusal((50, 'read only'))
        (50, 'read only')

    """
    if result is None:
        return None
    if isinstance(result, tuple):
        code, message = result
    else:
        code, message = result, ""
    if int(code) == 0:
        return None
    return int(code), str(message or "")


class HookRegistry:
    """
    Hook points, and the functions registered against them.
    """

    def __init__(self) -> None:
        self._definitions: dict[str, HookDefinition] = {}
        self._hooks: dict[str, list[Hook]] = {}

    @property
    def definitions(self) -> list[HookDefinition]:
        return list(self._definitions.values())

    def register_hook_definition(self, hook_name: str, signature: str) -> None:
        """
        Declare a new hook point.

        Raises:
            ValueError: ``hook_name`` is already declared

        """
        if hook_name in self._definitions:
            msg = f'"{hook_name}" is already a defined hook'
            raise ValueError(msg)
        self._definitions[hook_name] = HookDefinition(name=hook_name, signature=signature)

    def definition(self, hook_name: str) -> HookDefinition:
        try:
            return self._definitions[hook_name]
        except KeyError:
            msg = f'"{hook_name}" is not a known hook'
            raise ValueError(msg) from None

    def register_hook(
        self, hook_name: str, func: Callable[..., Any], tags: list[str] | None = None
    ) -> None:
        """
        Add ``func`` to the functions run at ``hook_name``.  Functions run in
        the order they were registered.

        Keyword Args:
            tags: only run ``func`` for trees with at least one of these tags

        Raises:
            ValueError: ``hook_name`` is not a known hook

        """
        self.definition(hook_name)
        self._hooks.setdefault(hook_name, []).append(Hook(func, frozenset(tags or ())))

    def unregister_hook(self, hook_name: str, func: Callable[..., Any]) -> None:
        """
        Remove every registration of ``func`` for ``hook_name``.
        """
        self._hooks[hook_name] = [
            hook for hook in self._hooks.get(hook_name, []) if hook.func is not func
        ]

    def get(self, hook_name: str, tags: list[str] | None = None) -> list[Callable[..., Any]]:
        """
        The functions that apply to a tree tagged with ``tags``, in
        registration order.

        Raises:
            ValueError: ``hook_name`` is not a known hook

        """
        self.definition(hook_name)
        wanted = set(tags or ())
        return [hook.func for hook in self._hooks.get(hook_name, []) if hook.applies_to(wanted)]

    def run(self, hook_name: str, tags: list[str] | None, *args: Any) -> Refusal | None:
        """
        Call the ``hook_name`` functions for a tree tagged with ``tags``.

        At a ``pre_*`` point the first function to refuse wins: the rest are
        not called, and its :py:data:`Refusal` is returned.

        Returns:
            ``None``, unless a ``pre_*`` function refused.

        """
        can_refuse = self.definition(hook_name).can_refuse
        for func in self.get(hook_name, tags):
            result = func(*args)
            if can_refuse:
                refusal = as_refusal(result)
                if refusal is not None:
                    return refusal
        return None


hooks = HookRegistry()

hooks.register_hook_definition("post_tree_init", "Callable[[DirectoryTree], None]")
hooks.register_hook_definition("pre_add", "Callable[[DirectoryTree, Entry], int | None]")
hooks.register_hook_definition("post_add", "Callable[[DirectoryTree, Entry], None]")
hooks.register_hook_definition(
    "pre_modify", "Callable[[DirectoryTree, str, ChangeList], int | None]"
)
hooks.register_hook_definition("post_modify", "Callable[[DirectoryTree, Entry], None]")
hooks.register_hook_definition("pre_delete", "Callable[[DirectoryTree, Entry], int | None]")
hooks.register_hook_definition("post_delete", "Callable[[DirectoryTree, Entry], None]")
hooks.register_hook_definition("pre_rename", "Callable[[DirectoryTree, str, str], int | None]")
hooks.register_hook_definition("post_rename", "Callable[[DirectoryTree, Entry], None]")
hooks.register_hook_definition(
    "pre_load_objects", "Callable[[DirectoryTree, str], int | None]"
)
hooks.register_hook_definition("post_load_objects", "Callable[[DirectoryTree], None]")
