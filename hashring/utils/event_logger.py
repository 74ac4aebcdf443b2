import os
import time
import threading
from collections import deque


class EventLogger:
    """Thread-safe logger of ring events.

    The most recent messages are kept in memory so they can be served
    quickly via the API. When ``log_path`` is given every event is also
    appended to that file with a timestamp, and :meth:`sync` picks up lines
    written by other processes sharing the file.
    """

    def __init__(self, log_path: str | None = None, *, max_events: int = 1000) -> None:
        self.log_path = log_path
        self._lock = threading.Lock()
        self._events = deque(maxlen=max_events)
        self._fp = None
        self._read_pos = 0
        # offsets of lines this logger wrote past _read_pos
        self._own_offsets: set[int] = set()
        if log_path:
            directory = os.path.dirname(log_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            # allow reading appended lines from other processes
            self._fp = open(log_path, "a+", encoding="utf-8")
            self._fp.seek(0, os.SEEK_END)
            self._read_pos = self._fp.tell()

    def close(self) -> None:
        """Close the underlying log file, if any."""
        with self._lock:
            if self._fp is not None:
                self._fp.close()
                self._fp = None

    def log(self, message: str) -> None:
        """Record ``message`` with a timestamp."""
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
        entry = f"[{timestamp}] {message}"
        with self._lock:
            if self._fp is not None:
                # own lines are already in memory and are skipped on sync
                offset = self._fp.seek(0, os.SEEK_END)
                self._fp.write(entry + "\n")
                self._fp.flush()
                if offset == self._read_pos:
                    self._read_pos = self._fp.tell()
                else:
                    self._own_offsets.add(offset)
            self._events.append(entry)

    def sync(self) -> None:
        """Read any new log lines written by other processes."""
        with self._lock:
            if self._fp is None:
                return
            self._fp.flush()
            self._fp.seek(self._read_pos)
            while True:
                offset = self._fp.tell()
                line = self._fp.readline()
                if not line:
                    break
                if offset in self._own_offsets:
                    self._own_offsets.discard(offset)
                    continue
                self._events.append(line.rstrip("\n"))
            self._read_pos = self._fp.tell()
            self._fp.seek(0, os.SEEK_END)

    def get_events(self, offset: int = 0, limit: int | None = None) -> list[str]:
        """Return recent log entries stored in memory."""
        with self._lock:
            entries = list(self._events)
        if offset < 0:
            offset = 0
        end = offset + limit if limit is not None else None
        return entries[offset:end]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
