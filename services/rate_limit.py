"""
Fixed-window, in-memory request rate limiting.

Counters are keyed by client identifier and request path and live in this
process only. Good enough for a single-instance deployment; a multi-worker
deployment gets one budget per worker. Expired windows are swept out at most
once per window length, or sooner when too many are held.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from functools import wraps

from flask import current_app, request

from services.errors import RateLimited

# Preset name -> config key holding the per-window limit
PRESETS = {
    'auth': 'RATE_LIMIT_AUTH',
    'mutation': 'RATE_LIMIT_MUTATION',
}

_windows = {}
_lock = threading.Lock()
_next_sweep_at = 0.0

# Sweep early once this many windows are held, even if a window has not elapsed
SWEEP_THRESHOLD = 10_000


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    def headers(self, now: float | None = None) -> dict:
        now = time.time() if now is None else now
        headers = {
            'X-RateLimit-Limit': str(self.limit),
            'X-RateLimit-Remaining': str(self.remaining),
            'X-RateLimit-Reset': str(int(self.reset_at)),
        }
        if not self.allowed:
            headers['Retry-After'] = str(max(1, int(self.reset_at - now + 0.999)))
        return headers


def check(key: str, limit: int, window_seconds: int, now: float | None = None) -> RateLimitResult:
    """Count one request against *key* and report whether it is allowed."""
    global _next_sweep_at
    now = time.time() if now is None else now
    with _lock:
        if now >= _next_sweep_at or len(_windows) >= SWEEP_THRESHOLD:
            _evict_expired(now)
            _next_sweep_at = now + window_seconds
        window = _windows.get(key)
        if window is None or window['reset_at'] <= now:
            window = {'count': 0, 'reset_at': now + window_seconds}
            _windows[key] = window
        if window['count'] >= limit:
            return RateLimitResult(False, limit, 0, window['reset_at'])
        window['count'] += 1
        return RateLimitResult(True, limit, limit - window['count'], window['reset_at'])


def _evict_expired(now: float) -> None:
    expired = [key for key, window in _windows.items() if window['reset_at'] <= now]
    for key in expired:
        del _windows[key]


def window_count() -> int:
    with _lock:
        return len(_windows)


def reset() -> None:
    global _next_sweep_at
    with _lock:
        _windows.clear()
        _next_sweep_at = 0.0


def client_identifier() -> str:
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr or 'unknown'


def rate_limited(preset: str):
    """Route decorator applying the named preset to the wrapped view."""
    config_key = PRESETS[preset]

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if current_app.config.get('RATE_LIMIT_ENABLED', True):
                limit = int(current_app.config[config_key])
                window = int(current_app.config.get('RATE_LIMIT_WINDOW_SECONDS', 60))
                result = check(f'{preset}:{client_identifier()}:{request.path}', limit, window)
                if not result.allowed:
                    raise RateLimited(headers=result.headers())
            return view(*args, **kwargs)
        return wrapper
    return decorator
