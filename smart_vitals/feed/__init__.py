"""
Observation feed: caching, pagination and optimistic creates.
"""

from smart_vitals.feed.cache import ResponseCache
from smart_vitals.feed.manager import FeedManager, get_feed_manager
from smart_vitals.feed.observation_feed import (
    ObservationFeed,
    build_temperature_observation,
    parse_temperature,
)
from smart_vitals.feed.scheduler import DeferredTask

__all__ = [
    "DeferredTask",
    "FeedManager",
    "ObservationFeed",
    "ResponseCache",
    "build_temperature_observation",
    "get_feed_manager",
    "parse_temperature",
]
