"""Grammar-driven matching of monitor messages."""

from .grammar import (
    FIELD_HOT_WATER,
    FIELD_SOLAR,
    FIELD_TEMPERATURE,
    FIELD_TIME,
    FIELD_TOTAL,
    MESSAGE_TAG,
    MONITOR_GRAMMAR,
    POWER_FIELDS,
    GrammarError,
    GrammarNode,
    LeafCapture,
    SequenceNode,
    SequenceRoot,
    channel,
    field_keys,
    monitor_grammar,
    validate_grammar,
)
from .matcher import Record, TagMatcher

__all__ = [
    "FIELD_HOT_WATER",
    "FIELD_SOLAR",
    "FIELD_TEMPERATURE",
    "FIELD_TIME",
    "FIELD_TOTAL",
    "MESSAGE_TAG",
    "MONITOR_GRAMMAR",
    "POWER_FIELDS",
    "GrammarError",
    "GrammarNode",
    "LeafCapture",
    "SequenceNode",
    "SequenceRoot",
    "channel",
    "field_keys",
    "monitor_grammar",
    "validate_grammar",
    "Record",
    "TagMatcher",
]
