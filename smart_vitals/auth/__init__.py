"""
Authentication module for SMART Vitals.

Provides the SMART launch state machine and the persisted launch state it
operates on. The controller lives in smart_vitals.auth.launch_controller.
"""

from smart_vitals.auth.launch import LaunchPlan, LaunchState, StoredLaunch, plan_launch
from smart_vitals.auth.token_store import (
    InMemoryStorage,
    RedisStorage,
    StorageBackend,
    TokenStore,
)

__all__ = [
    "LaunchPlan",
    "LaunchState",
    "StoredLaunch",
    "plan_launch",
    "InMemoryStorage",
    "RedisStorage",
    "StorageBackend",
    "TokenStore",
]
