from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone

from ..domain.models import AlertDefinition, WeatherAlert


class AlertRegistry:
    """Process-lifetime store of alert definitions keyed by id.

    Iteration order is registration order. All operations take the registry
    lock, so callers receive snapshots rather than live views.
    """

    def __init__(self) -> None:
        self._alerts: dict[str, WeatherAlert] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)

    def register(self, definition: AlertDefinition) -> WeatherAlert:
        alert = WeatherAlert(
            **definition.model_dump(),
            id=uuid.uuid4().hex,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._alerts[alert.id] = alert
        return alert

    def remove(self, alert_id: str) -> bool:
        with self._lock:
            return self._alerts.pop(alert_id, None) is not None

    def list(self) -> list[WeatherAlert]:
        with self._lock:
            return list(self._alerts.values())

    def get(self, alert_id: str) -> WeatherAlert | None:
        with self._lock:
            return self._alerts.get(alert_id)

    def mark_triggered(self, alert_id: str, triggered_at: datetime) -> WeatherAlert | None:
        """Stamp ``last_triggered_at`` and return the updated record, or None if removed."""
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                return None
            updated = alert.model_copy(update={"last_triggered_at": triggered_at})
            self._alerts[alert_id] = updated
            return updated

    def clear(self) -> None:
        with self._lock:
            self._alerts.clear()
