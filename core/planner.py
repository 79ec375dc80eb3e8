from dataclasses import dataclass
from typing import Tuple

from core.constants import (
    CMD_LO_DISABLE, CMD_LO_SET, CMD_SRC_FREQ, CMD_SRC_LEVEL_LO, CMD_SRC_REFERENCE,
    FREQ_MAX_GHZ, FREQ_MIN_GHZ, LO_BYPASS_MAX_GHZ, LO_INCREMENTS_GHZ, LO_LEVEL_DBM,
    LO_MIN_GHZ, REFERENCE_FREQ_GHZ, REFERENCE_LEVEL_DBM,
)
from core.errors import InvalidFrequency
from core.utils import format_number


@dataclass(frozen=True)
class FrequencyPlan:
    frequency_ghz: float
    increment_ghz: float
    lo_enabled: bool
    lo_offset_mhz: float
    source_freq_ghz: float
    source_level_dbm: float
    meter_commands: Tuple[str, ...]
    source_commands: Tuple[str, ...]


def choose_increment(frequency_ghz: float) -> float:
    """Первое приращение из списка, при котором f + inc > 2 ГГц."""
    for inc in LO_INCREMENTS_GHZ:
        if frequency_ghz + inc > LO_MIN_GHZ:
            return inc
    raise InvalidFrequency(
        f"No LO increment puts {frequency_ghz} GHz above {format_number(LO_MIN_GHZ)} GHz"
    )


def plan_frequency(frequency_ghz: float) -> FrequencyPlan:
    """Команды для 8902A и 8673B под ожидаемую частоту (ГГц). Без ввода-вывода.

    До 1.3 ГГц LO отключается, источник уходит на 3 ГГц / -70 дБм.
    Выше: LO = f + inc, источник на f + inc ГГц / +8 дБм.
    """
    if not FREQ_MIN_GHZ <= frequency_ghz <= FREQ_MAX_GHZ:
        raise InvalidFrequency(
            f"Frequency must be between {FREQ_MIN_GHZ} and {FREQ_MAX_GHZ} GHz"
        )

    if frequency_ghz <= LO_BYPASS_MAX_GHZ:
        return FrequencyPlan(
            frequency_ghz=frequency_ghz,
            increment_ghz=0.0,
            lo_enabled=False,
            lo_offset_mhz=0.0,
            source_freq_ghz=REFERENCE_FREQ_GHZ,
            source_level_dbm=REFERENCE_LEVEL_DBM,
            meter_commands=(CMD_LO_DISABLE,),
            source_commands=(CMD_SRC_REFERENCE,),
        )

    inc = choose_increment(frequency_ghz)
    lo_ghz = frequency_ghz + inc
    lo_mhz = lo_ghz * 1000
    return FrequencyPlan(
        frequency_ghz=frequency_ghz,
        increment_ghz=inc,
        lo_enabled=True,
        lo_offset_mhz=lo_mhz,
        source_freq_ghz=lo_ghz,
        source_level_dbm=LO_LEVEL_DBM,
        meter_commands=(CMD_LO_SET.format(mhz=format_number(lo_mhz)),),
        source_commands=(CMD_SRC_FREQ.format(ghz=format_number(lo_ghz)), CMD_SRC_LEVEL_LO),
    )
