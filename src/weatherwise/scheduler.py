from __future__ import annotations

import logging
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from .alerts.evaluator import AlertEvaluator

LOGGER = logging.getLogger(__name__)

ALERT_SWEEP_JOB_ID = "alert_sweep_job"


def run_alert_sweep_job(evaluator: AlertEvaluator) -> None:
    try:
        result = evaluator.sweep()
    except Exception:  # pragma: no cover - defensive fallback
        LOGGER.exception("Alert sweep job failed")
        return
    if result.triggered:
        LOGGER.info("Alert sweep triggered %d alert(s)", len(result.triggered))


def build_scheduler(evaluator: AlertEvaluator, *, interval_seconds: int) -> BackgroundScheduler:
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        run_alert_sweep_job,
        "interval",
        kwargs={"evaluator": evaluator},
        seconds=interval_seconds,
        id=ALERT_SWEEP_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=max(interval_seconds // 2, 1),
    )
    return scheduler


class AlertScheduler:
    """Owns the periodic alert sweep; ``start`` and ``stop`` are idempotent."""

    def __init__(self, evaluator: AlertEvaluator, *, interval_seconds: int) -> None:
        if interval_seconds < 1:
            raise ValueError("interval_seconds must be >= 1")
        self._evaluator = evaluator
        self.interval_seconds = interval_seconds
        self._scheduler: BackgroundScheduler | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        with self._lock:
            return self._scheduler is not None and self._scheduler.running

    def start(self) -> bool:
        with self._lock:
            if self._scheduler is not None and self._scheduler.running:
                return False
            self._scheduler = build_scheduler(self._evaluator, interval_seconds=self.interval_seconds)
            self._scheduler.start()
        LOGGER.info("Alert scheduler started (every %ss)", self.interval_seconds)
        return True

    def stop(self) -> bool:
        with self._lock:
            scheduler = self._scheduler
            self._scheduler = None
            if scheduler is None or not scheduler.running:
                return False
            scheduler.shutdown(wait=False)
        LOGGER.info("Alert scheduler stopped")
        return True
