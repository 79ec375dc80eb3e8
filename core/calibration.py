"""Последовательность обнуления и калибровки датчика HP 8902A.

Idle -> AwaitingConfirmation -> Zeroing -> WaitingZeroComplete -> Calibrating
     -> WaitingCalComplete -> Saving -> Complete

Aborted достижим из AwaitingConfirmation (пользователь отказался) и из обоих
Waiting* (таймаут SRQ, отмена, или ошибка записи при политике ABORT).
8673B в калибровке не участвует, но должен быть подключён.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

from loguru import logger

from core.cal_table import CalibrationFactor, program_table
from core.config import Role, SendFailurePolicy
from core.constants import (
    CMD_CAL_SOURCE_OFF, CMD_CAL_SOURCE_ON, CMD_RF_POWER_FREE, CMD_SAVE_CAL,
    CMD_SRQ_ARM, CMD_SRQ_CLEAR, CMD_ZERO,
)
from core.errors import CalibrationAborted, NotReady, WaitTimeout, WriteError


class CalState(Enum):
    IDLE = "Idle"
    AWAITING_CONFIRMATION = "AwaitingConfirmation"
    ZEROING = "Zeroing"
    WAITING_ZERO_COMPLETE = "WaitingZeroComplete"
    CALIBRATING = "Calibrating"
    WAITING_CAL_COMPLETE = "WaitingCalComplete"
    SAVING = "Saving"
    COMPLETE = "Complete"
    ABORTED = "Aborted"


@dataclass
class CalibrationResult:
    state: CalState
    history: List[CalState] = field(default_factory=list)
    failed_commands: List[str] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.state is CalState.COMPLETE and not self.failed_commands


class CalibrationOrchestrator:
    def __init__(self, sessions, policy: SendFailurePolicy = SendFailurePolicy.IGNORE,
                 srq_timeout_s: Optional[float] = None):
        self.sessions = sessions
        self.policy = policy
        self.srq_timeout_s = srq_timeout_s
        self.state = CalState.IDLE
        self._meter = None
        self._result = None

    def cancel(self):
        """Прервать ожидание SRQ из другого потока."""
        if self._meter is not None:
            logger.warning("Calibration cancel requested")
            self._meter.srq.cancel()

    def run(self, confirm: Callable[[], bool],
            factors: Optional[Sequence[CalibrationFactor]] = None) -> CalibrationResult:
        if not self.sessions.all_connected():
            raise NotReady("Both instruments must be connected before calibration can proceed.")
        self._meter = self.sessions.channel(Role.METER)
        self._meter.srq.reset(clear_cancel=True)
        self._result = CalibrationResult(state=CalState.IDLE, history=[CalState.IDLE])
        self.state = CalState.IDLE
        logger.info("Starting calibration process")

        try:
            if factors is not None:
                self._result.failed_commands += program_table(self._meter, factors)

            self._enter(CalState.AWAITING_CONFIRMATION)
            if not confirm():
                raise CalibrationAborted("Calibration aborted by user.")

            self._enter(CalState.ZEROING)
            self._send(CMD_RF_POWER_FREE)
            self._send(CMD_ZERO)
            self._arm()
            self._enter(CalState.WAITING_ZERO_COMPLETE)
            self._wait()
            self._send(CMD_SRQ_CLEAR)

            self._enter(CalState.CALIBRATING)
            self._send(CMD_RF_POWER_FREE)
            self._send(CMD_CAL_SOURCE_ON)
            self._arm()
            self._enter(CalState.WAITING_CAL_COMPLETE)
            self._wait()
            self._send(CMD_SRQ_CLEAR)

            self._enter(CalState.SAVING)
            self._send(CMD_SAVE_CAL)
            self._send(CMD_CAL_SOURCE_OFF)
        except (CalibrationAborted, WaitTimeout, WriteError) as e:
            return self._abort(e)
        finally:
            self._meter = None

        self._enter(CalState.COMPLETE)
        if self._result.failed_commands:
            logger.warning("Calibration completed with failed commands: {}",
                           self._result.failed_commands)
        else:
            logger.info("Calibration process completed")
        return self._result

    # --- steps ---
    def _enter(self, state: CalState):
        logger.debug("Calibration: {} -> {}", self.state.value, state.value)
        self.state = state
        self._result.state = state
        self._result.history.append(state)

    def _send(self, command: str):
        if not self._meter.send(command):
            self._result.failed_commands.append(command)

    def _arm(self):
        self._meter.srq.reset()
        self._send(CMD_SRQ_ARM)

    def _wait(self):
        # контрольная точка: ошибки записи проверяются перед ожиданием
        if self.policy is SendFailurePolicy.ABORT and self._result.failed_commands:
            raise WriteError(f"Command(s) not accepted: {self._result.failed_commands}")
        self._meter.srq.wait(self.srq_timeout_s)

    def _abort(self, error: Exception) -> CalibrationResult:
        if self.state in (CalState.WAITING_ZERO_COMPLETE, CalState.WAITING_CAL_COMPLETE):
            # снять маску SRQ, источник калибровки не оставлять включённым
            self._meter.send(CMD_SRQ_CLEAR)
            if self.state is CalState.WAITING_CAL_COMPLETE:
                self._meter.send(CMD_CAL_SOURCE_OFF)
        logger.error("Calibration aborted in {}: {}", self.state.value, error)
        self._result.error = error
        self._enter(CalState.ABORTED)
        return self._result
