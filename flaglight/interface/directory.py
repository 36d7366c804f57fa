import logging
from typing import Optional

from ..api import LightProtocol, Device


class DeviceDirectory:
    """Cache of the devices the current credential can control."""

    def __init__(self, protocol: LightProtocol, logger: Optional[logging.Logger] = None):
        self.protocol = protocol
        self.logger = logger or logging.getLogger(__name__)
        self.devices: list[Device] = []

    def __repr__(self) -> str:
        return f"DeviceDirectory<{len(self.devices)} devices>"

    @property
    def last_successful_contact(self) -> float:
        return self.protocol.last_successful_contact

    async def refresh(self) -> list[Device]:
        """Fetch the device list. The cache is only replaced on success."""
        devices = await self.protocol.list_devices()
        if len(devices) != len(self.devices):
            self.logger.info(f"Found {len(devices)} lights")
        self.devices = devices
        return devices

    def get(self, id: str) -> Optional[Device]:
        for device in self.devices:
            if device.id == id:
                return device
        return None

    def clear(self) -> None:
        self.devices = []
