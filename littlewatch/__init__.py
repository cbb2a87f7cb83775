"""LittleWatch client: session, REST API, realtime channel and vitals projection."""

__version__ = "0.1.0"
