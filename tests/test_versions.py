from __future__ import annotations

import pytest

from iotadmin.models.messages import UpdateMessage
from iotadmin.versions import (
    compare_versions,
    evaluate_rule,
    filter_messages,
    is_update_available,
)


@pytest.mark.parametrize(
    ("left", "right", "expected"),
    [
        ("1.0.0", "1.0.0", 0),
        ("1.0.10", "1.0.9", 1),
        ("1.2.0", "1.10.0", -1),
        ("2.0.0-alpha.1", "2.0.0", -1),
    ],
)
def test_compare_versions_orders_numerically(left: str, right: str, expected: int) -> None:
    assert compare_versions(left, right) == expected


def test_compare_versions_is_antisymmetric() -> None:
    pairs = [("1.0.0", "1.0.1"), ("3.1.4", "3.1.4"), ("1.0.0-rc.1", "1.0.0")]
    for a, b in pairs:
        assert compare_versions(a, b) == -compare_versions(b, a)


def test_compare_versions_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        compare_versions("not-a-version", "1.0.0")


def test_is_update_available_only_for_strictly_greater() -> None:
    assert is_update_available("1.5.0", "2.0.0")
    assert not is_update_available("2.0.0", "2.0.0")
    assert not is_update_available("2.0.1", "2.0.0")


def test_is_update_available_identical_strings_never_flag() -> None:
    assert not is_update_available("weird", "weird")


@pytest.mark.parametrize(
    ("rule", "old", "new", "expected"),
    [
        ("oldVersion<=1.0.44", "1.0.44", "1.0.45", True),
        ("oldVersion<=1.0.44", "1.0.45", "1.0.46", False),
        ("newVersion>=1.0.45", "1.0.44", "1.0.45", True),
        ("newVersion>2.0.0", "1.0.0", "2.0.0", False),
        ("oldVersion<1.0.0", "0.9.0", "1.0.0", True),
        ("oldVersion==1.0.0", "1.0.0", "1.1.0", True),
        ("oldVersion!=1.0.0", "1.0.0", "1.1.0", False),
    ],
)
def test_evaluate_rule(rule: str, old: str, new: str, expected: bool) -> None:
    assert evaluate_rule(rule, old, new) is expected


def test_evaluate_rule_unknown_operator_is_false() -> None:
    assert evaluate_rule("oldVersion~=1.0.0", "1.0.0", "2.0.0") is False


def test_evaluate_rule_unknown_subject_is_false() -> None:
    assert evaluate_rule("jsController>=1.0.0", "1.0.0", "2.0.0") is False


def test_evaluate_rule_incomparable_version_is_false() -> None:
    assert evaluate_rule("oldVersion<=banana", "1.0.0", "2.0.0") is False


def test_filter_messages_and_or_and_unconditional() -> None:
    always = UpdateMessage.model_validate({"title": {"en": "Always"}})
    both = UpdateMessage.model_validate(
        {
            "title": "Both",
            "condition": {"operand": "and", "rules": ["oldVersion<=1.0.44", "newVersion>=1.0.45"]},
        }
    )
    either = UpdateMessage.model_validate(
        {
            "title": "Either",
            "condition": {"operand": "or", "rules": ["oldVersion<=0.1.0", "newVersion>=1.0.45"]},
        }
    )
    never = UpdateMessage.model_validate({"title": "Never", "condition": {"rules": "newVersion>=9.0.0"}})

    shown = filter_messages([always, both, either, never], "1.0.40", "1.0.45")
    assert [m.localized("title", "de") for m in shown] == ["Always", "Both", "Either"]


def test_build_metadata_is_ignored() -> None:
    assert compare_versions("1.0.0", "1.0.0+build.5") == 0
    assert not is_update_available("1.0.0", "1.0.0+build.5")
    assert not is_update_available("1.0.0+build.1", "1.0.0+build.2")


@pytest.mark.parametrize(
    ("lower", "higher"),
    [
        ("1.0.0-alpha", "1.0.0-alpha.1"),
        ("1.0.0-alpha.1", "1.0.0-alpha.beta"),
        ("1.0.0-alpha.beta", "1.0.0-beta"),
        ("1.0.0-beta.2", "1.0.0-beta.11"),
        ("1.0.0-alpha.1", "1.0.0-dev.1"),
        ("1.0.0-rc.1", "1.0.0"),
    ],
)
def test_prerelease_precedence(lower: str, higher: str) -> None:
    assert compare_versions(lower, higher) == -1
    assert is_update_available(lower, higher)
    assert not is_update_available(higher, lower)


def test_empty_rule_list_follows_operand() -> None:
    shown_with_and = UpdateMessage.model_validate({"title": "and", "condition": {"operand": "and", "rules": []}})
    hidden_with_or = UpdateMessage.model_validate({"title": "or", "condition": {"operand": "or", "rules": []}})
    no_rules = UpdateMessage.model_validate({"title": "bare", "condition": {"operand": "or"}})

    shown = filter_messages([shown_with_and, hidden_with_or, no_rules], "1.0.0", "2.0.0")
    assert [m.title for m in shown] == ["and", "bare"]
