import json
import os
from decimal import Decimal
from dataclasses import dataclass
from typing import List, Sequence

from loguru import logger

from core.constants import (
    CAL_TABLE_FILE, CMD_OFFSET_TABLE, CMD_TABLE_CLEAR, CMD_TABLE_ENTRY, DEFAULT_CAL_TABLE,
)
from core.errors import CalTableError
from core.utils import format_fixed2


@dataclass(frozen=True)
class CalibrationFactor:
    frequency_ghz: float
    factor: float


def default_table() -> List[CalibrationFactor]:
    return [CalibrationFactor(f, cf) for f, cf in DEFAULT_CAL_TABLE]


def save_table(path: str, factors: Sequence[CalibrationFactor]):
    # ключи как в CalFactors92A.json исходной программы
    data = [{"Frequency": f.frequency_ghz, "CalFactor": f.factor} for f in factors]
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(data, fh)


def create_default_table(path: str = CAL_TABLE_FILE):
    logger.warning("Creating default calibration factor file {}", path)
    save_table(path, default_table())


def load_table(path: str = CAL_TABLE_FILE) -> List[CalibrationFactor]:
    """Порядок записей сохраняется: так они и уходят в прибор."""
    if not os.path.exists(path):
        create_default_table(path)
        logger.warning("Loading default calibration factor file")
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        return [CalibrationFactor(float(d["Frequency"]), float(d["CalFactor"])) for d in data]
    except (ValueError, KeyError, TypeError, OSError) as e:
        raise CalTableError(f"Invalid calibration factor file {path}: {e!r}") from e


def table_commands(factors: Sequence[CalibrationFactor]) -> List[str]:
    cmds = [CMD_OFFSET_TABLE, CMD_TABLE_CLEAR]
    for f in factors:
        # МГц считаем в десятичной арифметике, не во float
        mhz = format_fixed2(Decimal(str(f.frequency_ghz)) * 1000)
        cmds.append(CMD_TABLE_ENTRY.format(mhz=mhz, factor=format_fixed2(f.factor)))
    return cmds


def program_table(channel, factors: Sequence[CalibrationFactor]) -> List[str]:
    """Записать таблицу в 8902A. Возвращает команды, которые не прошли."""
    failed = [cmd for cmd in table_commands(factors) if not channel.send(cmd)]
    if failed:
        logger.warning("{}: {} calibration table command(s) failed", channel.name, len(failed))
    else:
        logger.info("Calibration factors loaded ({} points)", len(factors))
    return failed
