"""Declarative grammar describing the one message shape the monitor emits.

A grammar is a small immutable tree built from three node kinds:

- ``SequenceRoot`` is the outermost element and matches its own start tag.
- ``SequenceNode`` is an element whose start tag its parent has consumed.
  It matches its children in order, then its own end tag.
- ``LeafCapture`` is an element holding one text payload, stored under
  ``field_key``.

Children must appear in declared order, but unrecognised siblings between
them are skipped together with everything nested inside them.
"""

from dataclasses import dataclass
from typing import List, Tuple, Union

MESSAGE_TAG = "msg"

FIELD_TIME = "time"
FIELD_TEMPERATURE = "temperature"
FIELD_TOTAL = "total"
FIELD_HOT_WATER = "hot_water"
FIELD_SOLAR = "solar"

POWER_FIELDS = (FIELD_TOTAL, FIELD_HOT_WATER, FIELD_SOLAR)


@dataclass(frozen=True)
class LeafCapture:
    """Element holding a single text payload bound to ``field_key``."""

    name: str
    field_key: str


@dataclass(frozen=True)
class SequenceNode:
    """Element matched child by child once its start tag has been read."""

    name: str
    children: Tuple["GrammarNode", ...]


@dataclass(frozen=True)
class SequenceRoot:
    """Outermost element; the only node that reads its own start tag."""

    name: str
    children: Tuple["GrammarNode", ...]


GrammarNode = Union[SequenceRoot, SequenceNode, LeafCapture]


class GrammarError(ValueError):
    """Raised when a grammar tree is malformed."""


def field_keys(node: GrammarNode) -> List[str]:
    """All field keys declared under ``node``, in document order."""
    if isinstance(node, LeafCapture):
        return [node.field_key]
    keys: List[str] = []
    for child in node.children:
        keys.extend(field_keys(child))
    return keys


def validate_grammar(root: GrammarNode) -> GrammarNode:
    """Check that ``root`` is a usable top-level grammar.

    Raises:
        GrammarError: The top node is not a ``SequenceRoot``, a nested node
            is a ``SequenceRoot``, a name is empty, or two leaves share a
            field key.
    """
    if not isinstance(root, SequenceRoot):
        raise GrammarError("Top-level grammar node must be a SequenceRoot")

    def _check(node: GrammarNode, is_top: bool) -> None:
        if not node.name:
            raise GrammarError("Grammar element names must not be empty")
        if isinstance(node, LeafCapture):
            if not node.field_key:
                raise GrammarError(f"Leaf <{node.name}> has an empty field key")
            return
        if isinstance(node, SequenceRoot) and not is_top:
            raise GrammarError(f"SequenceRoot <{node.name}> cannot be nested")
        if not isinstance(node, (SequenceRoot, SequenceNode)):
            raise GrammarError(f"Unknown grammar node: {node!r}")
        for child in node.children:
            _check(child, False)

    _check(root, True)

    keys = field_keys(root)
    duplicates = sorted({key for key in keys if keys.count(key) > 1})
    if duplicates:
        raise GrammarError(f"Duplicate field keys: {', '.join(duplicates)}")
    return root


def channel(name: str, field_key: str) -> SequenceNode:
    """A ``<chN><watts>...</watts></chN>`` sensor channel."""
    return SequenceNode(name, (LeafCapture("watts", field_key),))


def monitor_grammar() -> SequenceRoot:
    """Grammar for the energy monitor's live ``<msg>`` updates."""
    return SequenceRoot(MESSAGE_TAG, (
        LeafCapture("time", FIELD_TIME),
        LeafCapture("tmpr", FIELD_TEMPERATURE),
        channel("ch1", FIELD_TOTAL),
        channel("ch2", FIELD_HOT_WATER),
        channel("ch3", FIELD_SOLAR),
    ))


MONITOR_GRAMMAR = validate_grammar(monitor_grammar())
