"""Visiting and grepping nested collections.

Dicts, lists, tuples, sets and frozensets are branches; everything else is a
leaf. A node's path is the keys and indexes leading to it from the root:

    >>> data = {"a": {"c": {"cc": {"aaa": [1, 2, 3, 4, 5]}}}}
    >>> [v.path for v in walk(data) if v.node == 5]
    [('a', 'c', 'cc', 'aaa', 4)]

`grep` finds the containers holding matching leaves:

    >>> grep(42, {"1": {"a": 11}, "2": {"b": 42}})
    [(('2', 'b'), {'b': 42})]
    >>> grep(lambda n: n == 0, [[1, 2, 3], [0, 1, 2]])
    [((1, 0), [0, 1, 2])]

Register more branch types with `is_branch`, `children` and `make_node`.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, replace
from functools import singledispatch
from typing import Any, Callable, Iterable, Iterator, TypeAlias

_KEEP = object()


@dataclass(slots=True, frozen=True)
class Visit:
    """A node reached during a traversal, with its path and enclosing container."""

    node: Any
    path: tuple = ()
    parent: Any = None

    @property
    def depth(self) -> int:
        return len(self.path)

    @property
    def is_root(self) -> bool:
        return not self.path


@dataclass(slots=True, frozen=True)
class Step:
    """What a visitor wants done with the current node.

    Attributes:
        node: Replacement for the node; omitted keeps it
        state: New traversal state; omitted keeps it
        stop: End the whole traversal after this node
        skip: Skip the remaining visitors for this node
    """

    node: Any = _KEEP
    state: Any = _KEEP
    stop: bool = False
    skip: bool = False


Visitor: TypeAlias = Callable[[Visit, Any], Step | None]


@singledispatch
def is_branch(node: Any) -> bool:
    return False


@is_branch.register(Mapping)
@is_branch.register(list)
@is_branch.register(tuple)
@is_branch.register(set)
@is_branch.register(frozenset)
def _(node: Any) -> bool:
    return True


@singledispatch
def children(node: Any) -> Iterable[tuple[Any, Any]]:
    """The ``(key, child)`` pairs of a branch."""
    raise TypeError(f"{type(node).__name__} is not a branch")


@children.register(Mapping)
def _(node: Mapping) -> Iterable[tuple[Any, Any]]:
    return node.items()


@children.register(list)
@children.register(tuple)
@children.register(set)
@children.register(frozenset)
def _(node: Any) -> Iterable[tuple[Any, Any]]:
    return enumerate(node)


@singledispatch
def make_node(node: Any, pairs: list[tuple[Any, Any]]) -> Any:
    """Rebuild a branch of the same kind as node from ``(key, child)`` pairs."""
    raise TypeError(f"{type(node).__name__} is not a branch")


@make_node.register(Mapping)
def _(node: Mapping, pairs: list[tuple[Any, Any]]) -> Any:
    return dict(pairs)


@make_node.register(list)
def _(node: list, pairs: list[tuple[Any, Any]]) -> Any:
    return [child for _, child in pairs]


@make_node.register(tuple)
def _(node: tuple, pairs: list[tuple[Any, Any]]) -> Any:
    return tuple(child for _, child in pairs)


@make_node.register(set)
def _(node: set, pairs: list[tuple[Any, Any]]) -> Any:
    return {child for _, child in pairs}


@make_node.register(frozenset)
def _(node: frozenset, pairs: list[tuple[Any, Any]]) -> Any:
    return frozenset(child for _, child in pairs)


def walk(root: Any) -> Iterator[Visit]:
    """Yield every node depth first, parents before their children."""
    stack = [Visit(root)]

    while stack:
        current = stack.pop()

        yield current

        if is_branch(current.node):
            below = [
                Visit(child, current.path + (key,), current.node)
                for key, child in children(current.node)
            ]
            stack.extend(reversed(below))


def visit(root: Any, visitors: list[Visitor], state: Any = None) -> tuple[Any, Any]:
    """Run visitors over every node, threading state through them.

    Each visitor is called as ``visitor(visit, state)`` and returns None to
    leave things as they are, or a `Step`. Replaced nodes are traversed in
    their new form and the tree is rebuilt around them.

    Returns:
        The (possibly rebuilt) root and the final state.
    """
    node, state, _ = _visit(Visit(root), visitors, state)

    return node, state


def _visit(current: Visit, visitors: list[Visitor], state: Any) -> tuple[Any, Any, bool]:
    node, state, stop = _apply(current, visitors, state)

    if stop or not is_branch(node):
        return node, state, stop

    pairs = []
    changed = False

    for key, child in children(node):
        if stop:
            pairs.append((key, child))
            continue

        below = Visit(child, current.path + (key,), node)
        new_child, state, stop = _visit(below, visitors, state)

        changed = changed or new_child is not child
        pairs.append((key, new_child))

    if changed:
        node = make_node(node, pairs)

    return node, state, stop


def _apply(current: Visit, visitors: list[Visitor], state: Any) -> tuple[Any, Any, bool]:
    node = current.node

    for visitor in visitors:
        step = visitor(replace(current, node=node), state)

        if step is None:
            continue

        if step.node is not _KEEP:
            node = step.node

        if step.state is not _KEEP:
            state = step.state

        if step.stop:
            return node, state, True

        if step.skip:
            break

    return node, state, False


def _matcher(pattern: Any, transforms: tuple[Callable[[Any], Any], ...]) -> Callable[[Any], bool]:
    match pattern:
        case re.Pattern():
            test = lambda node: pattern.search(str(node)) is not None
        case str():
            test = lambda node: pattern in str(node)
        case _ if callable(pattern):
            test = pattern
        case _:
            test = lambda node: node == pattern

    def matches(node: Any) -> bool:
        for transform in transforms:
            node = transform(node)

        return bool(test(node))

    return matches


def grep_nodes(pattern: Any, root: Any, *transforms: Callable[[Any], Any]) -> list[Visit]:
    """Find the leaves matching pattern.

    A compiled regex is searched in ``str(leaf)``, a string must be a substring
    of ``str(leaf)``, a callable is used as a predicate and anything else must
    compare equal. Transforms are applied to each leaf, in order, before it is
    matched. Mapping keys are part of paths but are not matched themselves.
    """
    matches = _matcher(pattern, transforms)

    return [
        current
        for current in walk(root)
        if current.node is not None
        and not is_branch(current.node)
        and matches(current.node)
    ]


def grep(pattern: Any, root: Any, *transforms: Callable[[Any], Any]) -> list[tuple[tuple, Any]]:
    """Like `grep_nodes`, returning ``(path, container)`` for each matching leaf.

    A matching root leaf is its own container.
    """
    return [
        (current.path, current.node if current.is_root else current.parent)
        for current in grep_nodes(pattern, root, *transforms)
    ]
