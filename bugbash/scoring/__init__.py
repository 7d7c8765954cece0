"""Fix-event scoring engine.

Public API
----------
FixEventMessage
    Decoded fix event as reported by external tooling.
decode_fix_event / convert_fix_event
    Turn wire JSON or a decoded mapping into a ``FixEventMessage``.
decode_classification_tree / aggregate_classifications
    Build and price the label tree carried by a fix event.
compute_score
    Points a fix event is worth in one campaign.
resolve_participants
    Enrolled participants a fix event scores for.
apply_fix_event
    Resolve, price and persist a fix event for every participant.

The Dramatiq replay actor lives in :mod:`bugbash.scoring.actor` and is not
imported here so that importing the engine never configures a broker.
"""

from __future__ import annotations

from .calculator import UNCLASSIFIED_FIX_POINTS, compute_score
from .classification import (
    ClassificationTotals,
    aggregate_classifications,
    decode_classification_tree,
)
from .errors import FixEventDecodeError, MalformedClassificationError, ScoringError
from .models import (
    ClassificationEntry,
    ClassificationLeaf,
    ClassificationNode,
    FixEventMessage,
    MalformedClassification,
    ParticipantInfo,
    ScoreApplication,
    convert_fix_event,
    decode_fix_event,
)
from .observability import ScoringEventLogger, ScoringEventType
from .pipeline import apply_fix_event
from .protocol import PointValueLookup, ScoringStore
from .resolver import resolve_participants

__all__ = [
    "UNCLASSIFIED_FIX_POINTS",
    "ClassificationEntry",
    "ClassificationLeaf",
    "ClassificationNode",
    "ClassificationTotals",
    "FixEventDecodeError",
    "FixEventMessage",
    "MalformedClassification",
    "MalformedClassificationError",
    "ParticipantInfo",
    "PointValueLookup",
    "ScoreApplication",
    "ScoringError",
    "ScoringEventLogger",
    "ScoringEventType",
    "ScoringStore",
    "aggregate_classifications",
    "apply_fix_event",
    "compute_score",
    "convert_fix_event",
    "decode_classification_tree",
    "decode_fix_event",
    "resolve_participants",
]
