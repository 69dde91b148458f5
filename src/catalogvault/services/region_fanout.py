"""Region fan-out and merge.

One logical discovery request becomes one resolved-and-cached fetch per
region. Results are concatenated in region order and deduplicated by item id,
keeping the first occurrence; response metadata comes from the first region.
A single failing region fails the whole aggregate.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, Awaitable, Callable

from catalogvault.shared.errors import AggregationError, ErrorCode, ErrorContext

logger = logging.getLogger(__name__)

RegionFetch = Callable[[str | None], Awaitable[dict[str, Any]]]


def _item_identity(item: Any) -> Any:
    if isinstance(item, dict):
        return item.get("id")
    return getattr(item, "id", None)


def merge_region_results(responses: Sequence[dict[str, Any]]) -> dict[str, Any]:
    """Merge per-region responses.

    Items without an id are kept as-is. Metadata (total_pages, total_results,
    page) is taken from the first response only.
    """
    if not responses:
        return {"page": 1, "results": [], "total_pages": 0, "total_results": 0}

    seen: set[Any] = set()
    merged: list[Any] = []
    for response in responses:
        for item in response.get("results") or []:
            identity = _item_identity(item)
            if identity is None:
                merged.append(item)
                continue
            if identity in seen:
                continue
            seen.add(identity)
            merged.append(item)

    return {**responses[0], "results": merged}


async def fan_out(
    regions: Sequence[str],
    fetch_for_region: RegionFetch,
) -> dict[str, Any]:
    """Run ``fetch_for_region`` concurrently for every region and merge.

    An empty region list runs a single branch with region None.

    Raises:
        AggregationError: If any region's fetch fails
    """
    branches: list[str | None] = list(regions) if regions else [None]

    outcomes = await asyncio.gather(
        *(fetch_for_region(region) for region in branches),
        return_exceptions=True,
    )

    responses: list[dict[str, Any]] = []
    for region, outcome in zip(branches, outcomes):
        if isinstance(outcome, BaseException):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            raise AggregationError(
                code=ErrorCode.AGGREGATION_FAILED,
                message=f"Discovery failed for region {region or 'default'}: {outcome}",
                context=ErrorContext(
                    operation="region_fan_out",
                    additional_data={"region": region, "region_count": len(branches)},
                ),
                original_error=outcome if isinstance(outcome, Exception) else None,
                region=region,
            ) from outcome
        responses.append(outcome)

    merged = merge_region_results(responses)
    logger.debug(
        "Merged %d region(s) into %d results",
        len(branches),
        len(merged["results"]),
    )
    return merged
