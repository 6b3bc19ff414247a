"""
Accelerator capability detection. Each engine backend exposes the device types
it can run on here; the bootstrapper checks before loading anything.
"""

from __future__ import annotations

import logging

from engines import engine_class

log = logging.getLogger(__name__)


class CapabilityDetector:
    """Answers whether a backend can use a device type in this environment."""

    def available_devices(self, engine_id: str) -> list[str]:
        try:
            devices = engine_class(engine_id).available_devices()
        except ImportError as e:
            log.warning("Engine %s runtime is not installed: %s", engine_id, e)
            return []
        log.debug("Engine %s devices: %s", engine_id, devices)
        return devices

    def supports(self, engine_id: str, device_type: str) -> bool:
        return device_type in self.available_devices(engine_id)
