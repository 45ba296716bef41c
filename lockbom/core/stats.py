import threading
import time
from dataclasses import dataclass
from dataclasses import field


@dataclass
class ScanStats:
    files_scanned: int = 0
    files_failed: int = 0
    files_ignored: int = 0
    packages: int = 0
    start_time: float = field(default_factory=time.time)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def inc_scanned(self, packages: int = 0):
        with self._lock:
            self.files_scanned += 1
            self.packages += packages

    def inc_failed(self, count: int = 1):
        with self._lock:
            self.files_failed += count

    def inc_ignored(self, count: int = 1):
        with self._lock:
            self.files_ignored += count

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time
