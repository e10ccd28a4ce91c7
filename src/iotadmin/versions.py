"""Version comparison and conditional upgrade-message rules."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

import semver

from iotadmin.models.messages import UpdateMessage

_logger = logging.getLogger(__name__)

__all__ = [
    "compare_versions",
    "evaluate_rule",
    "filter_messages",
    "is_update_available",
]


def compare_versions(left: str, right: str) -> int:
    """Return ``-1``, ``0`` or ``1`` as *left* is lower, equal or greater than *right*.

    Ordering follows semantic-version precedence: build metadata is ignored
    and pre-release identifiers compare numerically or in ASCII order.
    Raises :class:`ValueError` for strings that are not semantic versions.
    """
    result = semver.Version.parse(left).compare(right)
    if result < 0:
        return -1
    if result > 0:
        return 1
    return 0


def is_update_available(installed: str, available: str) -> bool:
    """Whether *available* is strictly greater than *installed*.

    Identical strings never flag, even if they would not parse.
    """
    if installed == available:
        return False
    return compare_versions(available, installed) > 0


_OPERATORS: dict[str, Callable[[int], bool]] = {
    "==": lambda c: c == 0,
    "!=": lambda c: c != 0,
    ">": lambda c: c > 0,
    "<": lambda c: c < 0,
    ">=": lambda c: c >= 0,
    "<=": lambda c: c <= 0,
}


def evaluate_rule(rule: str, old_version: str | None, new_version: str | None) -> bool:
    """Evaluate a single rule such as ``"oldVersion<=1.0.44"``.

    Unknown subjects, unknown operators and versions that cannot be
    compared all evaluate to ``False``.
    """
    if "oldVersion" in rule:
        version = old_version
        _, _, rest = rule.partition("oldVersion")
    elif "newVersion" in rule:
        version = new_version
        _, _, rest = rule.partition("newVersion")
    else:
        _logger.debug("Unknown rule subject in %r", rule)
        return False

    rest = rest.strip()
    if len(rest) > 1 and rest[1].isdigit():
        op, target = rest[0], rest[1:]
    else:
        op, target = rest[:2], rest[2:]

    compare = _OPERATORS.get(op)
    if compare is None:
        _logger.warning("Unknown rule %s%s", version, rest)
        return False
    if version is None:
        return False
    try:
        return compare(compare_versions(version, target.strip()))
    except ValueError:
        _logger.warning("Cannot compare %s%s", version, rest)
        return False


def filter_messages(
    messages: Iterable[UpdateMessage],
    old_version: str | None,
    new_version: str | None,
) -> list[UpdateMessage]:
    """Return the messages whose condition holds for the given upgrade path.

    Messages without a rule list are always shown.  Operand ``"or"`` needs
    one matching rule, anything else needs all of them, so an empty list
    hides an ``"or"`` message and shows any other.
    """
    shown: list[UpdateMessage] = []
    for message in messages:
        condition = message.condition
        if condition is None or condition.rules is None:
            shown.append(message)
            continue
        results = [evaluate_rule(rule, old_version, new_version) for rule in condition.rules]
        if condition.operand == "or":
            show = any(results)
        else:
            show = all(results)
        if show:
            shown.append(message)
    return shown
