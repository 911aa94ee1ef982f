"""
Advance insurance claim review.

Claims on insurance-advance invoices start ``Pending`` and are either
released, approved by a doctor or cancelled.  Release and approval stamp
who did it and when; only a cancellation keeps a remark.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from django.utils import timezone

PENDING = 'Pending'
RELEASED = 'Released'
APPROVED = 'Approved by doctor'
CANCELLED = 'Cancelled'

STATUSES = (PENDING, RELEASED, APPROVED, CANCELLED)
STAMPED = (RELEASED, APPROVED)


def apply_claim_status(
    claim: dict,
    status: str,
    actor: str,
    remark: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Return the update body moving ``claim`` to ``status``."""
    if status not in STATUSES:
        raise ValueError(f'unknown claim status: {status}')
    if status in STAMPED:
        release_date = (now or timezone.now()).isoformat()
        released_by = actor
    else:
        release_date = claim.get('advanceClaimReleaseDate')
        released_by = claim.get('advanceClaimReleasedBy')
    return {
        'updateType': 'advanceClaim',
        'advanceClaimStatus': status,
        'advanceClaimCancellationRemark': (remark or None) if status == CANCELLED else None,
        'advanceClaimReleaseDate': release_date,
        'advanceClaimReleasedBy': released_by,
    }


def cancelled_claims(records: Iterable[dict]) -> list[dict]:
    return [r for r in records or () if isinstance(r, dict) and r.get('advanceClaimStatus') == CANCELLED]
