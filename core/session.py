from typing import Callable, Dict, Optional

from loguru import logger

from core.channel import CommandChannel, default_bus_factory
from core.config import RigConfig, Role, validate_address_pair
from core.errors import NotReady


class SessionManager:
    """
    Единственный владелец каналов стенда:
    - не больше одного живого канала на роль
    - повторный connect закрывает старый канал (с предупреждением)
    - неудачный connect оставляет роль отключённой
    """

    def __init__(self, config: Optional[RigConfig] = None,
                 bus_factory: Optional[Callable[[int], object]] = None):
        self.config = config or RigConfig()
        self._bus_factory = bus_factory or default_bus_factory(self.config.backends)
        self._channels: Dict[Role, CommandChannel] = {}

    # --- addresses ---
    def set_addresses(self, meter_address: int, source_address: int):
        if self.any_open():
            raise NotReady("Disconnect both instruments before changing addresses")
        validate_address_pair(meter_address, source_address)
        self.config.meter_address = meter_address
        self.config.source_address = source_address
        logger.info("GPIB addresses set: 8902A={}, 8673B={}", meter_address, source_address)

    # --- connect ---
    def connect(self, role: Role) -> CommandChannel:
        if role in self._channels:
            logger.warning("{} already connected. Disconnecting and reconnecting.", role.value)
            self.disconnect(role)

        address = self.config.address_for(role)
        channel = CommandChannel(
            address,
            self._bus_factory(address),
            name=role.value,
            board=self.config.board,
            timeout_ms=self.config.timeout_ms,
        )
        channel.open()
        self._channels[role] = channel
        return channel

    def connect_all(self):
        """8902A, затем 8673B; первая ошибка прерывает подключение."""
        for role in (Role.METER, Role.SOURCE):
            self.connect(role)

    def is_connected(self, role: Role) -> bool:
        channel = self._channels.get(role)
        return channel is not None and channel.is_connected

    def any_open(self) -> bool:
        return bool(self._channels)

    def all_connected(self) -> bool:
        return all(self.is_connected(role) for role in Role)

    def channel(self, role: Role) -> CommandChannel:
        if not self.is_connected(role):
            raise NotReady(f"{role.value} is not connected")
        return self._channels[role]

    # --- cleanup ---
    def disconnect(self, role: Role):
        channel = self._channels.pop(role, None)
        if channel is not None:
            channel.close()
            logger.info("{} disconnected", role.value)

    def close(self):
        for role in list(self._channels):
            self.disconnect(role)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
