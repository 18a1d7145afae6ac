from __future__ import annotations

import json
from typing import Sequence

from ..processors import OfferingMetrics, VaultMetrics
from ..processors.common import to_jsonable
from ..vesting import VestingPoint


def build_document(
    metrics: OfferingMetrics | VaultMetrics,
    schedule: Sequence[VestingPoint],
) -> dict[str, object]:
    """Combine point metrics and the vesting series into one document."""
    kind = "offering" if isinstance(metrics, OfferingMetrics) else "vault"
    return {
        "kind": kind,
        "metrics": metrics.to_dict(),
        "vesting_schedule": to_jsonable(list(schedule)),
    }


def dumps_document(
    metrics: OfferingMetrics | VaultMetrics,
    schedule: Sequence[VestingPoint],
) -> str:
    return json.dumps(build_document(metrics, schedule), indent=2)
