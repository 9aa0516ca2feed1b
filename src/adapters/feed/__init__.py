from .http_bus_feed_provider import HttpBusFeedProvider

__all__ = ["HttpBusFeedProvider"]
