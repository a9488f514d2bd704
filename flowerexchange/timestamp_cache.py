"""Background-refreshed wall-clock timestamp text."""

from __future__ import annotations

import threading

from flowerexchange.types import current_timestamp


class TimestampCache:
    """Keeps a current timestamp string refreshed by a worker thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._control = threading.Lock()
        self._current = ""
        self._stop_event = threading.Event()
        self._worker: threading.Thread | None = None

    @property
    def running(self) -> bool:
        """Whether the refresh worker is active."""
        return self._worker is not None

    def start(self, refresh_interval: float = 0.001) -> None:
        """Refresh now and then every ``refresh_interval`` seconds until stopped."""
        with self._control:
            if self._worker is not None:
                return
            self._refresh_once()
            self._stop_event.clear()
            self._worker = threading.Thread(
                target=self._run,
                args=(refresh_interval,),
                name="timestamp-cache",
                daemon=True,
            )
            self._worker.start()

    def stop(self) -> None:
        """Stop the refresh worker; the last value stays available."""
        with self._control:
            worker = self._worker
            if worker is None:
                return
            self._stop_event.set()
            worker.join()
            self._worker = None

    def snapshot(self) -> str:
        """Return the most recent timestamp, or an empty string if never started."""
        with self._lock:
            return self._current

    def __enter__(self) -> TimestampCache:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def _run(self, refresh_interval: float) -> None:
        while not self._stop_event.is_set():
            self._refresh_once()
            self._stop_event.wait(refresh_interval)

    def _refresh_once(self) -> None:
        value = current_timestamp()
        with self._lock:
            self._current = value