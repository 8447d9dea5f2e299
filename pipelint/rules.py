"""Visibility-rule expressions attached to task inputs.

A rule is a small boolean expression such as
``"command = install && type = npm || command = ci"``: ``||`` separates
OR-groups, ``&&`` separates the conditions of a group and every condition is
exactly three whitespace separated tokens ``field operator literal``.  Only
string equality (``=`` or ``==``) is supported.

Evaluation never raises.  Conditions that cannot be parsed or that use an
unknown operator are logged and evaluate to ``False``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import logging
from typing import Any, Final, Tuple

__all__ = [
    "AND_SEPARATOR",
    "Condition",
    "ConditionGroup",
    "EQUALITY_OPERATORS",
    "OR_SEPARATOR",
    "evaluate",
    "is_valid_rule",
    "parse_rule",
]

logger = logging.getLogger(__name__)

OR_SEPARATOR: Final[str] = "||"
AND_SEPARATOR: Final[str] = "&&"
EQUALITY_OPERATORS: Final[frozenset[str]] = frozenset({"=", "=="})


@dataclass(frozen=True)
class Condition:
    """Single ``field operator literal`` comparison."""

    field: str
    operator: str
    value: str

    @property
    def is_malformed(self) -> bool:
        return not self.field

    def matches(self, values: Mapping[str, Any]) -> bool:
        if self.is_malformed:
            return False
        if self.operator in EQUALITY_OPERATORS:
            actual = values.get(self.field)
            return isinstance(actual, str) and actual == self.value
        logger.warning("Unsupported operator %r in condition on %r", self.operator, self.field)
        return False


_MALFORMED = Condition(field="", operator="=", value="")


@dataclass(frozen=True)
class ConditionGroup:
    """Parsed rule: OR-groups, each holding AND-conditions."""

    groups: Tuple[Tuple[Condition, ...], ...] = ()

    def __iter__(self):
        return iter(self.groups)

    def __len__(self) -> int:
        return len(self.groups)

    def conditions(self) -> Tuple[Condition, ...]:
        return tuple(condition for group in self.groups for condition in group)

    def is_satisfied_by(self, values: Mapping[str, Any]) -> bool:
        return any(all(condition.matches(values) for condition in group) for group in self.groups)


def _is_blank(rule: str | None) -> bool:
    return not rule or not rule.strip()


def _parse_condition(text: str) -> Condition:
    parts = text.split()
    if len(parts) != 3:
        logger.warning("Invalid condition format: %r", text)
        return _MALFORMED
    field, operator, value = parts
    return Condition(field=field, operator=operator, value=value)


def parse_rule(rule: str | None) -> ConditionGroup:
    """Parse ``rule`` into a :class:`ConditionGroup`.

    Blank rules produce an empty group.  Malformed conditions are kept as
    conditions with an empty field so that they can never match.
    """

    if _is_blank(rule):
        return ConditionGroup()
    groups = []
    for or_group in rule.split(OR_SEPARATOR):
        conditions = tuple(
            _parse_condition(condition.strip()) for condition in or_group.strip().split(AND_SEPARATOR)
        )
        groups.append(conditions)
    return ConditionGroup(groups=tuple(groups))


def evaluate(rule: str | None, values: Any) -> bool:
    """Return ``True`` when ``rule`` is satisfied by ``values``.

    A blank rule carries no constraint and is always satisfied.  Without an
    input mapping the rule cannot be evaluated and is treated as unsatisfied.
    """

    if _is_blank(rule):
        return True
    if not isinstance(values, Mapping):
        return False
    return parse_rule(rule).is_satisfied_by(values)


def is_valid_rule(rule: str | None) -> bool:
    """Syntactic check: every condition has a field and an equality operator."""

    if _is_blank(rule):
        return True
    return all(
        condition.field and condition.operator in EQUALITY_OPERATORS
        for condition in parse_rule(rule).conditions()
    )
