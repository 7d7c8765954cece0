"""Point computation for a single fix event against a single campaign."""

from __future__ import annotations

import typing as typ

from bugbash.scoring.classification import (
    aggregate_classifications,
    decode_classification_tree,
)
from bugbash.scoring.observability import ScoringEventLogger

if typ.TYPE_CHECKING:
    from bugbash.scoring.models import FixEventMessage
    from bugbash.scoring.protocol import PointValueLookup

# Unclassified fixes earn a flat point each.
UNCLASSIFIED_FIX_POINTS = 1


async def compute_score(
    lookup: PointValueLookup,
    message: FixEventMessage,
    campaign_name: str,
    *,
    event_logger: ScoringEventLogger | None = None,
) -> float:
    """Return the points a fix event is worth in ``campaign_name``.

    Classified fixes are priced through ``lookup``; malformed classification
    entries are logged and contribute nothing. Each unclassified fix adds
    :data:`UNCLASSIFIED_FIX_POINTS`.
    """
    tree = decode_classification_tree(message.classification_counts)
    totals = await aggregate_classifications(lookup, message, campaign_name, tree)

    if totals.errors:
        logger_ = event_logger or ScoringEventLogger()
        for error in totals.errors:
            logger_.log_malformed_classification(message, campaign_name, error)

    return totals.points + message.total_fixed * UNCLASSIFIED_FIX_POINTS
