"""``${name}`` variable substitution into strings.

    >>> subst("Hello, ${name}: ${message}", name="world", message="hi")
    'Hello, world: hi'

Values come from the environment first, then from the substitutions given.
`subst` raises `UnresolvedVariableError` for a variable it cannot resolve;
`partial_subst` leaves it in place for a later pass.
"""

from __future__ import annotations

import os
import re
from typing import Any, Iterable, Mapping

from .types import NO_RESULT

VARIABLE = re.compile(r"\$\{(.*?)\}")


class UnresolvedVariableError(LookupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Not found: '{name}'")

        self.name = name


def _substitutions(mapping: Mapping[str, Any] | None, values: Mapping[str, Any]) -> dict:
    if mapping is not None and not isinstance(mapping, Mapping):
        raise TypeError("substitutions must be a mapping")

    return {**(mapping or {}), **values}


def resolve_var(
    substitutions: Mapping[str, Any],
    name: str,
    *,
    partial: bool = False,
    environ: Mapping[str, str] | None = None,
) -> Any:
    """Look up a variable in the environment, then in `substitutions`.

    Returns ``NO_RESULT`` for an unknown variable when `partial` is set,
    otherwise raises `UnresolvedVariableError`.
    """
    environ = os.environ if environ is None else environ

    if name in environ:
        return environ[name]

    if substitutions.get(name) is not None:
        return substitutions[name]

    if partial:
        return NO_RESULT

    raise UnresolvedVariableError(name)


def _resolved(
    substitutions: Mapping[str, Any],
    name: str,
    partial: bool,
    environ: Mapping[str, str] | None,
) -> Any:
    value = resolve_var(substitutions, name, partial=partial, environ=environ)

    return f"${{{name}}}" if value is NO_RESULT else value


def parameters(template: str) -> list[str]:
    """Variable names in the order they appear, repeats included."""
    return VARIABLE.findall(template)


def interpolation_vars(template: str) -> list[str]:
    """The distinct variable names used in template, sorted."""
    return sorted(set(VARIABLE.findall(template)))


def parameter_list(
    source: str | Iterable[str],
    substitutions: Mapping[str, Any],
    *,
    partial: bool = False,
    environ: Mapping[str, str] | None = None,
) -> list[Any]:
    """Resolve the variables of a template string, or a sequence of names, in order.

    With `partial`, unresolved variables come back as their ``${name}`` text.
    """
    names = parameters(source) if isinstance(source, str) else list(source)

    return [_resolved(substitutions, name, partial, environ) for name in names]


def sql_vars(template: str) -> tuple[str, list[str]]:
    """Turn template variables into ``:name`` bind parameters.

    Returns the SQL together with the variable names in order of appearance.
    """
    return VARIABLE.sub(lambda match: f":{match.group(1)}", template), parameters(template)


def subst(
    template: str,
    substitutions: Mapping[str, Any] | None = None,
    /,
    *,
    environ: Mapping[str, str] | None = None,
    **values: Any,
) -> str:
    """Replace every ``${name}`` in template with its value.

    Substitutions can be a mapping, keyword arguments or both; keywords win.

    Raises:
        UnresolvedVariableError: A variable is neither in the environment nor
            in the substitutions.
    """
    lookup = _substitutions(substitutions, values)

    return VARIABLE.sub(
        lambda match: str(_resolved(lookup, match.group(1), False, environ)), template
    )


def partial_subst(
    template: str,
    substitutions: Mapping[str, Any] | None = None,
    /,
    *,
    environ: Mapping[str, str] | None = None,
    **values: Any,
) -> str:
    """Like `subst`, but unresolved variables are left as they are.

    Use `interpolation_vars` on the result to see what is still missing.
    """
    lookup = _substitutions(substitutions, values)

    return VARIABLE.sub(
        lambda match: str(_resolved(lookup, match.group(1), True, environ)), template
    )
