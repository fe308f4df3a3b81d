"""Activity tracing for pipeline stages.

A single HelperTracer is created at startup and handed to every service,
so tests can inject their own instance and inspect the recorded activities.
"""

import time
from contextlib import contextmanager
from typing import Any, Iterator

from shared.helper.HelperConfig import HelperConfig


class Activity:
    """One traced unit of work (e.g. a scan or the embedding of a chunk)."""

    def __init__(self, name: str, tags: dict[str, Any] | None = None):
        self.name = name
        self.tags: dict[str, Any] = dict(tags or {})
        self.status = "ok"
        self.error: str | None = None
        self.started_at = time.perf_counter()
        self.duration_ms: float | None = None

    def set_tag(self, key: str, value: Any) -> None:
        self.tags[key] = value

    def set_status(self, status: str, error: str | None = None) -> None:
        self.status = status
        self.error = error

    def finish(self) -> None:
        self.duration_ms = (time.perf_counter() - self.started_at) * 1000


class HelperTracer:
    """Creates activities and logs them when they finish."""

    def __init__(self, helper_config: HelperConfig, source_name: str = "ruleset_rag", keep_history: int = 0):
        self.logging = helper_config.get_logger()
        self.source_name = source_name
        self._keep_history = keep_history
        self._history: list[Activity] = []

    @contextmanager
    def start_activity(self, name: str, **tags: Any) -> Iterator[Activity]:
        """Open an activity for the duration of the with-block.

        An exception raised inside the block marks the activity as failed and
        is re-raised unchanged.

        Args:
            name (str): Activity name, e.g. "chunking.process_document".
            **tags: Initial tags attached to the activity.

        Yields:
            Activity: The running activity, for adding tags while working.
        """
        activity = Activity(name=name, tags=tags)
        try:
            yield activity
        except BaseException as exc:
            activity.set_status("error", error=f"{type(exc).__name__}: {exc}")
            raise
        finally:
            activity.finish()
            self._record(activity)

    def get_history(self) -> list[Activity]:
        """Return the most recently finished activities (only kept if keep_history > 0)."""
        return list(self._history)

    def _record(self, activity: Activity) -> None:
        self.logging.debug(
            "[%s] %s finished in %.1f ms (status=%s) %s",
            self.source_name,
            activity.name,
            activity.duration_ms or 0.0,
            activity.status,
            activity.tags,
        )
        if self._keep_history > 0:
            self._history.append(activity)
            if len(self._history) > self._keep_history:
                self._history = self._history[-self._keep_history:]
