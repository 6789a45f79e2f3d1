"""Tests for grammar nodes and the monitor grammar."""

from dataclasses import FrozenInstanceError

import pytest

from currentcost_bridge.matching import (
    MONITOR_GRAMMAR,
    GrammarError,
    LeafCapture,
    SequenceNode,
    SequenceRoot,
    channel,
    field_keys,
    monitor_grammar,
    validate_grammar,
)


class TestMonitorGrammar:
    """Test the built-in message grammar."""

    def test_shape(self):
        assert MONITOR_GRAMMAR.name == "msg"
        assert [child.name for child in MONITOR_GRAMMAR.children] == [
            "time", "tmpr", "ch1", "ch2", "ch3",
        ]

    def test_field_keys(self):
        assert field_keys(MONITOR_GRAMMAR) == [
            "time", "temperature", "total", "hot_water", "solar",
        ]

    def test_builder_is_deterministic(self):
        assert monitor_grammar() == MONITOR_GRAMMAR

    def test_channel(self):
        node = channel("ch2", "hot_water")
        assert node == SequenceNode("ch2", (LeafCapture("watts", "hot_water"),))

    def test_nodes_are_immutable(self):
        with pytest.raises(FrozenInstanceError):
            MONITOR_GRAMMAR.name = "hist"  # type: ignore[misc]


class TestValidateGrammar:
    """Test grammar validation."""

    def test_returns_valid_grammar(self):
        root = SequenceRoot("r", (LeafCapture("a", "a"),))
        assert validate_grammar(root) is root

    def test_top_must_be_root(self):
        with pytest.raises(GrammarError, match="SequenceRoot"):
            validate_grammar(SequenceNode("r", ()))

    def test_nested_root_rejected(self):
        root = SequenceRoot("r", (SequenceRoot("inner", ()),))
        with pytest.raises(GrammarError, match="cannot be nested"):
            validate_grammar(root)

    def test_empty_name_rejected(self):
        with pytest.raises(GrammarError, match="names"):
            validate_grammar(SequenceRoot("r", (LeafCapture("", "a"),)))

    def test_empty_field_key_rejected(self):
        with pytest.raises(GrammarError, match="empty field key"):
            validate_grammar(SequenceRoot("r", (LeafCapture("a", ""),)))

    def test_duplicate_field_keys_rejected(self):
        root = SequenceRoot("r", (channel("ch1", "total"), channel("ch2", "total")))
        with pytest.raises(GrammarError, match="Duplicate field keys: total"):
            validate_grammar(root)

    def test_grammar_error_is_value_error(self):
        assert issubclass(GrammarError, ValueError)
