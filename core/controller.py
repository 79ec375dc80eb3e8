# core/controller.py
from typing import Callable, Optional

from loguru import logger

from core.cal_table import load_table
from core.calibration import CalibrationOrchestrator, CalibrationResult
from core.config import RigConfig, Role
from core.errors import NotReady
from core.planner import FrequencyPlan, plan_frequency
from core.session import SessionManager


class RigController:
    """
    Фасад для интерфейса:
    - адреса GPIB
    - подключение обоих приборов
    - калибровка датчика (с загрузкой таблицы коэффициентов)
    - установка ожидаемой частоты
    """

    def __init__(self, config: Optional[RigConfig] = None, bus_factory=None):
        self.config = config or RigConfig()
        self.sessions = SessionManager(self.config, bus_factory=bus_factory)
        self.orchestrator = CalibrationOrchestrator(
            self.sessions,
            policy=self.config.send_failure_policy,
            srq_timeout_s=self.config.srq_timeout_s,
        )

    # --- addresses ---
    def set_addresses(self, meter_address: int, source_address: int):
        self.sessions.set_addresses(meter_address, source_address)

    # --- connect ---
    def connect(self):
        self.sessions.connect_all()

    def is_connected(self) -> bool:
        return self.sessions.all_connected()

    # --- operations ---
    def calibrate(self, confirm: Callable[[], bool], load_factors: bool = True) -> CalibrationResult:
        factors = None
        if load_factors:
            self._require_connected("calibration")
            factors = load_table(self.config.cal_table_path)
        return self.orchestrator.run(confirm, factors=factors)

    def cancel_calibration(self):
        self.orchestrator.cancel()

    def set_expected_frequency(self, frequency_ghz: float) -> FrequencyPlan:
        self._require_connected("setting frequency")
        plan = plan_frequency(frequency_ghz)
        meter = self.sessions.channel(Role.METER)
        source = self.sessions.channel(Role.SOURCE)
        for cmd in plan.meter_commands:
            meter.send(cmd)
        for cmd in plan.source_commands:
            source.send(cmd)
        logger.info("Expected frequency {} GHz set on both instruments (LO {})",
                    frequency_ghz, f"{plan.source_freq_ghz} GHz" if plan.lo_enabled else "off")
        return plan

    def _require_connected(self, what: str):
        if not self.sessions.all_connected():
            raise NotReady(f"Both instruments must be connected before {what} can proceed.")

    # --- cleanup ---
    def close(self):
        self.sessions.close()
