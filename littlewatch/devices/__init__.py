"""Band linking by scanned serial."""

from littlewatch.devices.linking import DeviceLinker

__all__ = ["DeviceLinker"]
