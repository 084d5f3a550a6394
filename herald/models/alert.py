"""Alert data model."""

import hashlib
import json
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class AlertStatus(str, Enum):
    """State of an alert at notification time."""

    FIRING = "firing"
    RESOLVED = "resolved"


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class AlertEvent(BaseModel):
    """One firing or resolved alert instance, consumed read-only by notifiers."""

    labels: Dict[str, str] = Field(default_factory=dict, description="Identifying label set")
    annotations: Dict[str, str] = Field(default_factory=dict, description="Descriptive annotations")
    starts_at: datetime = Field(default_factory=utc_now)
    ends_at: Optional[datetime] = Field(None, description="Set once the alert has resolved")
    generator_url: str = Field("", description="Link back to the rule that produced the alert")

    # Enrichment attached by the evaluation engine
    value_string: str = ""
    silence_url: str = ""
    dashboard_url: str = ""
    panel_url: str = ""

    @property
    def name(self) -> str:
        return self.labels.get("alertname", "")

    def resolved(self, at: Optional[datetime] = None) -> bool:
        """An alert is resolved once its end time has passed."""
        if self.ends_at is None:
            return False
        at = at or utc_now()
        ends_at = self.ends_at
        if ends_at.tzinfo is None:
            ends_at = ends_at.replace(tzinfo=timezone.utc)
        return ends_at <= at

    @property
    def status(self) -> AlertStatus:
        return AlertStatus.RESOLVED if self.resolved() else AlertStatus.FIRING

    def fingerprint(self) -> str:
        """
        Stable identity of the alert.

        Only the label set is used, so annotation or timing changes keep the
        same fingerprint.
        """
        payload = json.dumps(self.labels, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]
