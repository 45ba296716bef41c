"""Process-wide cache of compiled regular expressions."""
import re
import threading

_cache: dict[tuple[str, int], re.Pattern] = {}
_lock = threading.Lock()


def compile(pattern: str, flags: int = 0) -> re.Pattern:
    key = (pattern, flags)
    compiled = _cache.get(key)
    if compiled is not None:
        return compiled

    compiled = re.compile(pattern, flags)
    with _lock:
        return _cache.setdefault(key, compiled)


def cache_size() -> int:
    return len(_cache)
