from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from core.constants import (
    ADDRESS_MAX, ADDRESS_MIN, CAL_TABLE_FILE, DEFAULT_BACKENDS,
    DEFAULT_METER_ADDRESS, DEFAULT_SOURCE_ADDRESS, GPIB_BOARD,
    SRQ_TIMEOUT_S, TIMEOUT_MS,
)
from core.errors import AddressError


class Role(Enum):
    METER = "HP 8902A"
    SOURCE = "HP 8673B"


class SendFailurePolicy(Enum):
    IGNORE = "ignore"   # как в исходнике: ошибка записи только логируется
    ABORT = "abort"


def validate_address(address: int) -> int:
    if isinstance(address, bool) or not isinstance(address, int):
        raise AddressError(f"Address must be an integer, got {address!r}")
    if not ADDRESS_MIN <= address <= ADDRESS_MAX:
        raise AddressError(f"Address must be between {ADDRESS_MIN} and {ADDRESS_MAX}")
    return address


def validate_address_pair(meter: int, source: int):
    validate_address(meter)
    validate_address(source)
    if meter == source:
        raise AddressError("8902A and 8673B addresses must differ")


@dataclass
class RigConfig:
    """Явная конфигурация стенда, передаётся в SessionManager."""
    meter_address: int = DEFAULT_METER_ADDRESS
    source_address: int = DEFAULT_SOURCE_ADDRESS
    board: int = GPIB_BOARD
    timeout_ms: int = TIMEOUT_MS
    backends: List[str] = field(default_factory=lambda: list(DEFAULT_BACKENDS))
    srq_timeout_s: Optional[float] = SRQ_TIMEOUT_S
    send_failure_policy: SendFailurePolicy = SendFailurePolicy.IGNORE
    cal_table_path: str = CAL_TABLE_FILE

    def __post_init__(self):
        validate_address_pair(self.meter_address, self.source_address)

    def address_for(self, role: Role) -> int:
        return self.meter_address if role is Role.METER else self.source_address
