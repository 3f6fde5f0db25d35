from __future__ import annotations

from typing import Any, Dict


# PUBLIC_INTERFACE
def stats_envelope(completed: int, pending: int) -> Dict[str, Any]:
    """
    Build the completion counters shown on profile and stats endpoints.

    Args:
        completed: Number of completed tasks.
        pending: Number of pending tasks.

    Returns:
        Dict with keys: total, completed, pending, completion_rate. The rate is
        a percentage rounded to 2 decimals, 0.0 when there are no tasks.
    """
    completed = max(int(completed), 0)
    pending = max(int(pending), 0)
    total = completed + pending
    rate = round(completed / total * 100, 2) if total > 0 else 0.0
    return {
        "total": total,
        "completed": completed,
        "pending": pending,
        "completion_rate": rate,
    }
