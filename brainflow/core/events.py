from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

from brainflow.streams import EventStream

EventType = Literal[
    "flow_step_advanced",
    "flow_finished",
    "flow_abandoned",
    "session_completed",
    "session_abandoned",
]


@dataclass(frozen=True, slots=True)
class AnalyticsEvent:
    type: EventType
    user_id: str
    payload: dict[str, str]
    ts: datetime

    @staticmethod
    def now(*, type: EventType, user_id: str, payload: dict[str, str]) -> "AnalyticsEvent":
        return AnalyticsEvent(type=type, user_id=user_id, payload=payload, ts=datetime.now(UTC))

    def stream_entry(self) -> tuple[str, dict[str, str]]:
        fields = {"type": self.type, "user_id": self.user_id, "ts": self.ts.isoformat(), **self.payload}
        return EventStream(user_id=self.user_id).key, fields
