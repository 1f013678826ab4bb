# tests/test_conversation_keys.py
"""Tests for deterministic conversation identifiers."""

import uuid

import pytest

from chatdesk.core.errors import InvalidArgumentError
from chatdesk.services.conversation_keys import (
    SEPARATOR,
    derive_conversation_id,
    split_conversation_id,
    validate_user_id,
)


def test_order_independent() -> None:
    for _ in range(20):
        a, b = str(uuid.uuid4()), str(uuid.uuid4())
        assert derive_conversation_id(a, b) == derive_conversation_id(b, a)


def test_sorted_and_joined() -> None:
    assert derive_conversation_id("u2", "u1") == f"u1{SEPARATOR}u2"


def test_distinct_pairs_get_distinct_ids() -> None:
    assert derive_conversation_id("u1", "u2") != derive_conversation_id("u1", "u3")


def test_self_conversation_rejected() -> None:
    with pytest.raises(InvalidArgumentError, match="yourself"):
        derive_conversation_id("u1", "u1")


@pytest.mark.parametrize("bad", ["", "   ", "a:b", "public"])
def test_malformed_ids_rejected(bad: str) -> None:
    with pytest.raises(InvalidArgumentError):
        validate_user_id(bad)
    with pytest.raises(InvalidArgumentError):
        derive_conversation_id("u1", bad)


def test_split_round_trips() -> None:
    assert split_conversation_id(derive_conversation_id("u9", "u3")) == ("u3", "u9")


def test_split_rejects_non_conversation_keys() -> None:
    with pytest.raises(InvalidArgumentError):
        split_conversation_id("public")
