"""REST fallback polling for screens not fed (or no longer fed) by the channel.

Modules:
    poller — FallbackPoller, fixed-interval fetch into a projection
"""

from littlewatch.sync.poller import FallbackPoller

__all__ = ["FallbackPoller"]
