"""Ordered background writer for the state file.

Every write replaces the whole file atomically: the payload goes to a
temporary file in the same directory which is then renamed over the
target. Payloads are written one at a time in submission order by a
single daemon thread, so a later write can never be overtaken by an
earlier one.
"""

from __future__ import annotations

import atexit
import os
import queue
import tempfile
import threading
from pathlib import Path
from typing import Callable, Optional

from app.events.notifications import NotificationBus, NotificationCategory, NotificationLevel
from exceptions import StateWriteError
from log_config.logger import get_logger

logger = get_logger(__name__)

# Called from the writer thread with (sequence number, success)
WriteCallback = Callable[[int, bool], None]

_STOP = object()


def atomic_write_text(path: Path, data: str) -> None:
    """Write ``data`` to ``path`` through a temp file and rename.

    Raises:
        StateWriteError: If the directory or file cannot be written
    """
    path = Path(path)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            encoding="utf-8",
            delete=False,
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except (OSError, UnicodeError) as e:
        raise StateWriteError(f"Failed to write state file {path}: {e}", path=path) from e
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.debug(f"Could not remove temp file {tmp_name}")


class StateWriter:
    """Serializes state file writes onto one background thread.

    With ``async_writes=False`` the same atomic write runs inline on the
    caller's thread instead.
    """

    def __init__(
        self,
        path: Path,
        notifier: NotificationBus,
        async_writes: bool = True,
    ):
        self._path = Path(path)
        self._notifier = notifier
        self._async = async_writes

        self._queue: "queue.Queue[object]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._thread_lock = threading.Lock()

        # submitted/completed counters back flush()
        self._progress = threading.Condition()
        self._submitted = 0
        self._completed = 0
        self._failures = 0

    @property
    def path(self) -> Path:
        return self._path

    @property
    def failure_count(self) -> int:
        return self._failures

    def submit(self, seq: int, payload: str, on_done: Optional[WriteCallback] = None) -> None:
        """Schedule ``payload`` to replace the state file.

        Never raises; failures are logged and published as notifications.
        """
        if not self._async:
            ok = self._write(payload)
            if on_done is not None:
                on_done(seq, ok)
            return

        self._ensure_thread()
        with self._progress:
            self._submitted += 1
        self._queue.put((seq, payload, on_done))

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Block until every write submitted so far has been attempted.

        Returns:
            False if the timeout expired first
        """
        with self._progress:
            target = self._submitted
            return self._progress.wait_for(lambda: self._completed >= target, timeout=timeout)

    def close(self, timeout: Optional[float] = 5.0) -> None:
        """Drain pending writes and stop the writer thread."""
        with self._thread_lock:
            thread = self._thread
            self._thread = None
        if thread is None:
            return
        self._queue.put(_STOP)
        thread.join(timeout)
        if thread.is_alive():
            logger.warning(f"State writer for {self._path} did not stop within {timeout}s")
        atexit.unregister(self.close)
        logger.debug(f"State writer for {self._path} stopped")

    def _ensure_thread(self) -> None:
        with self._thread_lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._thread = threading.Thread(
                target=self._run,
                name="state-writer",
                daemon=True,
            )
            self._thread.start()
        # Daemon threads die at interpreter exit; drain before that
        atexit.register(self.close)
        logger.debug(f"State writer started for {self._path}")

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            seq, payload, on_done = item
            try:
                ok = self._write(payload)
                if on_done is not None:
                    on_done(seq, ok)
            except Exception as e:
                logger.error(f"State writer error for write #{seq}: {e}")
            finally:
                # flush() waits on this counter; it must advance even on failure
                with self._progress:
                    self._completed += 1
                    self._progress.notify_all()

    def _write(self, payload: str) -> bool:
        try:
            atomic_write_text(self._path, payload)
        except StateWriteError as e:
            self._failures += 1
            self._notifier.notify(
                NotificationCategory.STATE,
                NotificationLevel.ERROR,
                f"Failed to write state file: {e}",
                source="StateWriter",
                exception=e,
                path=str(self._path),
            )
            return False
        logger.debug(f"State written to {self._path} ({len(payload)} bytes)")
        return True
