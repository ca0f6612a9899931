"""Onboarding progress computation."""

import math
from typing import Any

from onboarding_api.models.domain.hire import ACTIVE_ACCOUNT_STATUS, LaptopStatus, SyncStatus

ACCOUNT_WEIGHT = 25.0
LICENSE_WEIGHT = 20.0
SRF_WEIGHT = 15.0

LAPTOP_WEIGHTS = {
    LaptopStatus.PENDING.value.lower(): 0.0,
    LaptopStatus.IN_PROGRESS.value.lower(): 6.25,
    LaptopStatus.READY.value.lower(): 12.5,
    LaptopStatus.DONE.value.lower(): 25.0,
}
SYNC_WEIGHTS = {
    SyncStatus.SYNCED.value: 15.0,
    SyncStatus.PARTIAL.value: 7.5,
}


def progress_percentage(hire: Any) -> int:
    """Weighted onboarding completion in the range 0..100.

    Works on anything exposing the hire attributes (ORM row or DTO).
    Unknown laptop or sync values contribute nothing.
    """
    score = 0.0

    if getattr(hire, "account_creation_status", None) == ACTIVE_ACCOUNT_STATUS:
        score += ACCOUNT_WEIGHT

    laptop = (getattr(hire, "laptop_ready", None) or "").strip().lower()
    score += LAPTOP_WEIGHTS.get(laptop, 0.0)

    if getattr(hire, "license_assigned", False):
        score += LICENSE_WEIGHT
    if getattr(hire, "status_srf", False):
        score += SRF_WEIGHT

    score += SYNC_WEIGHTS.get(getattr(hire, "distribution_list_sync_status", None) or "", 0.0)

    return max(0, min(100, int(math.floor(score + 0.5))))
