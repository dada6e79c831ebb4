"""Internal application services."""

from .store import StoreError, fetch_match_state, match_lock, save_match_state

__all__ = [
    "StoreError",
    "fetch_match_state",
    "match_lock",
    "save_match_state",
]
