from threading import Lock
from time import time
from typing import Dict, List, Optional

from fastapi import HTTPException, status

from app.platform.config import settings

SWEEP_INTERVAL_SECONDS = 60

_requests: Dict[str, List[float]] = {}
_windows: Dict[str, float] = {}
_last_sweep = 0.0
_lock = Lock()


def _prune(key: str, now: float, window_seconds: float) -> List[float]:
    """Drop timestamps outside the window; forget the key once nothing is left."""
    cutoff = now - window_seconds
    timestamps = [ts for ts in _requests.get(key, []) if ts > cutoff]
    if timestamps:
        _requests[key] = timestamps
    else:
        _requests.pop(key, None)
        _windows.pop(key, None)
    return timestamps


def _sweep(now: float):
    global _last_sweep
    if now - _last_sweep < SWEEP_INTERVAL_SECONDS:
        return
    _last_sweep = now
    for key in list(_requests):
        _prune(key, now, _windows[key])


def rate_limit(key: str, max_requests: Optional[int] = None, window_seconds: Optional[int] = None):
    """Sliding-window limiter; raises 429 once `key` exceeds the allowance."""
    if not settings.RATE_LIMIT_ENABLED:
        return

    if max_requests is None:
        max_requests = settings.OTP_RATE_LIMIT
    if window_seconds is None:
        window_seconds = settings.OTP_RATE_WINDOW_SECONDS

    now = time()
    with _lock:
        _sweep(now)
        timestamps = _prune(key, now, window_seconds)
        if len(timestamps) >= max_requests:
            oldest = timestamps[0] if timestamps else now
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please slow down.",
                headers={"Retry-After": str(int(oldest + window_seconds - now) + 1)},
            )
        timestamps.append(now)
        _requests[key] = timestamps
        _windows[key] = window_seconds


def reset_rate_limits():
    global _last_sweep
    with _lock:
        _requests.clear()
        _windows.clear()
        _last_sweep = 0.0
