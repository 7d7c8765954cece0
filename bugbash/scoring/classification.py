"""Classification tree decoding and point aggregation.

Fix events carry an arbitrary-depth tree of defect labels, typically
``tool -> rule -> count``::

    {"G104": 1, "opt": {"semgrep": {"sprintf-host-port": 2}}}

:func:`decode_classification_tree` turns the decoded JSON into tagged
variants so aggregation can pattern-match instead of inspecting runtime
types. Values that are neither counts nor mappings survive decoding as
:class:`MalformedClassification` entries; :func:`aggregate_classifications`
skips them and records a :class:`MalformedClassificationError` while the
rest of the tree is still scored.
"""

from __future__ import annotations

import dataclasses
import typing as typ

from bugbash.scoring.errors import MalformedClassificationError
from bugbash.scoring.models import (
    ClassificationLeaf,
    ClassificationNode,
    MalformedClassification,
)

if typ.TYPE_CHECKING:
    from bugbash.scoring.models import ClassificationEntry, FixEventMessage
    from bugbash.scoring.protocol import PointValueLookup


@dataclasses.dataclass(slots=True)
class ClassificationTotals:
    """Running accumulators for a classification walk."""

    points: float = 0.0
    classified: float = 0.0
    errors: list[MalformedClassificationError] = dataclasses.field(
        default_factory=list
    )


def _decode_entry(value: object) -> ClassificationEntry:
    match value:
        case bool():
            # JSON true/false must not count as 1/0 fixes
            return MalformedClassification(type_name="bool")
        case int() | float():
            return ClassificationLeaf(count=float(value))
        case dict():
            return decode_classification_tree(value)
        case None:
            return MalformedClassification(type_name="null")
        case _:
            return MalformedClassification(type_name=type(value).__name__)


def decode_classification_tree(
    raw: typ.Mapping[str, object] | None,
) -> ClassificationNode:
    """Convert a decoded JSON mapping into a classification tree.

    ``None`` and empty mappings yield an empty node.
    """
    if not raw:
        return ClassificationNode()
    return ClassificationNode(
        children={str(label): _decode_entry(value) for label, value in raw.items()}
    )


async def aggregate_classifications(
    lookup: PointValueLookup,
    message: FixEventMessage,
    campaign_name: str,
    node: ClassificationNode | None,
    totals: ClassificationTotals | None = None,
) -> ClassificationTotals:
    """Add the points and counts of every leaf under ``node`` to ``totals``.

    Parameters
    ----------
    lookup
        Point-value source, queried once per leaf with the leaf's own label.
    message
        Fix event being scored; forwarded to the lookup.
    campaign_name
        Campaign whose point table applies.
    node
        Root of the (sub)tree to walk; ``None`` leaves totals unchanged.
    totals
        Accumulators to extend. A fresh instance is created when omitted.

    Returns
    -------
    ClassificationTotals
        The same accumulator object, updated in place.

    """
    result = totals if totals is not None else ClassificationTotals()
    if node is not None:
        await _walk(lookup, message, campaign_name, node, result, ())
    return result


async def _walk(  # noqa: PLR0913
    lookup: PointValueLookup,
    message: FixEventMessage,
    campaign_name: str,
    node: ClassificationNode,
    totals: ClassificationTotals,
    path: tuple[str, ...],
) -> None:
    for label, entry in node.children.items():
        entry_path = (*path, label)
        match entry:
            case ClassificationNode():
                await _walk(lookup, message, campaign_name, entry, totals, entry_path)
            case ClassificationLeaf(count=count):
                point_value = await lookup.select_point_value(
                    message, campaign_name, label
                )
                totals.points += count * point_value
                totals.classified += count
            case MalformedClassification(type_name=type_name):
                totals.errors.append(
                    MalformedClassificationError(entry_path, type_name)
                )
