from __future__ import annotations

from bisect import bisect_right

from docstore.constants import CHUNK_THRESHOLD, MIB
from docstore.models.document import UploadPlan

# (lower bound inclusive, degree); must stay sorted and non-decreasing.
CONCURRENCY_TIERS = (
    (0, 1),
    (1 * MIB, 2),
    (5 * MIB, 4),
    (20 * MIB, 8),
    (50 * MIB, 16),
)

_BOUNDS = [bound for bound, _ in CONCURRENCY_TIERS]


def plan_concurrency(size_bytes: int) -> int:
    """Return the number of parallel chunk transfers for a payload size."""
    if size_bytes < 0:
        raise ValueError(f"size_bytes must be non-negative, got {size_bytes}")
    return CONCURRENCY_TIERS[bisect_right(_BOUNDS, size_bytes) - 1][1]


def plan_upload(size_bytes: int) -> UploadPlan:
    return UploadPlan(
        concurrency_degree=plan_concurrency(size_bytes),
        chunk_threshold=CHUNK_THRESHOLD,
    )
