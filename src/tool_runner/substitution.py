"""Token substitution for tool arguments.

Arguments may reference environment entries either as ``$NAME`` or as
``$(NAME)``. The bare form only matches whole names, so ``$FOO`` leaves
``$FOOBAR`` alone.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SubstitutionRule:
    """Compiled replacement of one environment key."""

    key: str
    value: str
    pattern: re.Pattern[str]

    @classmethod
    def for_key(cls, key: str, value: str) -> SubstitutionRule:
        escaped = re.escape(key)
        return cls(
            key=key,
            value=value,
            pattern=re.compile(rf"\$(\({escaped}\)|{escaped}\b)"),
        )

    def apply(self, arg: str) -> str:
        # Callable replacement keeps backslashes in values (Windows paths) literal.
        return self.pattern.sub(lambda _match: self.value, arg)


def compile_rules(environment: Mapping[str, str]) -> list[SubstitutionRule]:
    return [SubstitutionRule.for_key(key, value) for key, value in environment.items()]


def apply_rules(args: Iterable[str], rules: list[SubstitutionRule]) -> list[str]:
    substituted: list[str] = []
    for arg in args:
        for rule in rules:
            arg = rule.apply(arg)
        substituted.append(arg)
    return substituted


def substitute_in_args(args: Iterable[str], environment: Mapping[str, str]) -> list[str]:
    """Return a copy of ``args`` with every ``$KEY`` / ``$(KEY)`` token replaced."""

    return apply_rules(args, compile_rules(environment))
