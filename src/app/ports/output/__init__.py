from .bus_feed_provider import IBusFeedProvider

__all__ = [
    "IBusFeedProvider",
]
