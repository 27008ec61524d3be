from dataclasses import dataclass, field
from typing import Any, Dict, List


PAGE_VIEW = "page_view"


@dataclass
class AnalyticsEvent:
    """A single Measurement Protocol event."""

    name: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AnalyticsPayload:
    """Body posted to the collector: one client id, its events."""

    client_id: str
    events: List[AnalyticsEvent] = field(default_factory=list)
