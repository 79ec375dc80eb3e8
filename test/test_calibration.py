import threading

import pytest

from core.cal_table import CalibrationFactor
from core.calibration import CalibrationOrchestrator, CalState
from core.config import Role, SendFailurePolicy
from core.errors import CalibrationAborted, NotReady, WaitTimeout, WriteError
from drivers.fake_bus import FakeBus

FULL_PATH = [
    CalState.IDLE,
    CalState.AWAITING_CONFIRMATION,
    CalState.ZEROING,
    CalState.WAITING_ZERO_COMPLETE,
    CalState.CALIBRATING,
    CalState.WAITING_CAL_COMPLETE,
    CalState.SAVING,
    CalState.COMPLETE,
]

METER_SEQUENCE = [
    "IP",
    "M4T0", "ZR", "22.3SP", "*CLS", "22.0SP",
    "M4T0", "C1", "22.3SP", "*CLS", "22.0SP",
    "SC", "C0",
]


def yes():
    return True


class TestPreconditions:
    @pytest.mark.parametrize(
        "connected",
        [(), (Role.METER,), (Role.SOURCE,)],
        ids=["none", "meter-only", "source-only"],
    )
    def test_not_ready_unless_both_connected(self, sessions, connected):
        for role in connected:
            sessions.connect(role)
        asked = []
        orch = CalibrationOrchestrator(sessions)
        with pytest.raises(NotReady):
            orch.run(lambda: asked.append(True) or True)
        assert asked == []
        assert orch.state is CalState.IDLE


class TestCalibrationRun:
    def test_complete_run(self, sessions, buses):
        sessions.connect_all()
        result = CalibrationOrchestrator(sessions, srq_timeout_s=2.0).run(yes)
        assert result.state is CalState.COMPLETE
        assert result.ok
        assert result.history == FULL_PATH
        assert buses[14].commands == METER_SEQUENCE
        # 8673B в калибровке не участвует
        assert buses[19].commands == ["IP"]

    def test_save_before_source_off(self, sessions, buses):
        sessions.connect_all()
        CalibrationOrchestrator(sessions, srq_timeout_s=2.0).run(yes)
        cmds = buses[14].commands
        assert cmds.index("SC") < cmds.index("C0")
        assert cmds[-2:] == ["SC", "C0"]

    def test_table_is_programmed_before_confirmation(self, sessions, buses):
        sessions.connect_all()
        seen = []

        def confirm():
            seen.extend(buses[14].commands)
            return True

        factors = [CalibrationFactor(0.05, 100.0), CalibrationFactor(2.0, 96.3)]
        result = CalibrationOrchestrator(sessions, srq_timeout_s=2.0).run(confirm, factors)
        assert result.ok
        assert seen == ["IP", "27.1SP", "37.9SP", "37.3SP50.00MZ100.00CF", "37.3SP2000.00MZ96.30CF"]

    def test_user_declines(self, sessions, buses):
        sessions.connect_all()
        result = CalibrationOrchestrator(sessions).run(lambda: False)
        assert result.state is CalState.ABORTED
        assert result.history == [CalState.IDLE, CalState.AWAITING_CONFIRMATION, CalState.ABORTED]
        assert isinstance(result.error, CalibrationAborted)
        assert buses[14].commands == ["IP"]

    def test_orchestrator_can_run_twice(self, sessions, buses):
        sessions.connect_all()
        orch = CalibrationOrchestrator(sessions, srq_timeout_s=2.0)
        assert orch.run(yes).ok
        assert orch.run(yes).ok
        assert buses[14].commands == METER_SEQUENCE + METER_SEQUENCE[1:]


class TestAborts:
    def test_missing_srq_times_out(self, sessions, buses):
        buses[14] = FakeBus(auto_srq=False)
        sessions.connect_all()
        result = CalibrationOrchestrator(sessions, srq_timeout_s=0.1).run(yes)
        assert result.state is CalState.ABORTED
        assert result.history[-2] is CalState.WAITING_ZERO_COMPLETE
        assert isinstance(result.error, WaitTimeout)
        assert buses[14].commands[-1] == "22.0SP"
        assert "C1" not in buses[14].commands

    def test_timeout_during_calibration_turns_source_off(self, sessions, buses):
        bus = FakeBus(auto_srq=False)
        buses[14] = bus
        sessions.connect_all()
        # только первый SRQ (обнуление)
        threading.Timer(0.1, bus.fire_srq).start()
        result = CalibrationOrchestrator(sessions, srq_timeout_s=0.5).run(yes)
        assert result.state is CalState.ABORTED
        assert result.history[-2] is CalState.WAITING_CAL_COMPLETE
        assert bus.commands[-2:] == ["22.0SP", "C0"]
        assert "SC" not in bus.commands

    def test_cancel_interrupts_wait(self, sessions, buses):
        buses[14] = FakeBus(auto_srq=False)
        sessions.connect_all()
        orch = CalibrationOrchestrator(sessions, srq_timeout_s=None)
        threading.Timer(0.2, orch.cancel).start()
        result = orch.run(yes)
        assert result.state is CalState.ABORTED
        assert isinstance(result.error, CalibrationAborted)


class TestSendFailurePolicy:
    def test_ignore_policy_completes_and_reports(self, sessions, buses):
        buses[14] = FakeBus(fail_on={"SC"})
        sessions.connect_all()
        result = CalibrationOrchestrator(
            sessions, policy=SendFailurePolicy.IGNORE, srq_timeout_s=2.0
        ).run(yes)
        assert result.state is CalState.COMPLETE
        assert result.failed_commands == ["SC"]
        assert not result.ok
        assert buses[14].commands[-1] == "C0"

    def test_ignore_policy_keeps_going_after_early_failure(self, sessions, buses):
        buses[14] = FakeBus(fail_on={"M4T0"})
        sessions.connect_all()
        result = CalibrationOrchestrator(sessions, srq_timeout_s=2.0).run(yes)
        assert result.state is CalState.COMPLETE
        assert result.failed_commands == ["M4T0", "M4T0"]

    def test_abort_policy_stops_at_next_wait(self, sessions, buses):
        buses[14] = FakeBus(fail_on={"M4T0"})
        sessions.connect_all()
        result = CalibrationOrchestrator(
            sessions, policy=SendFailurePolicy.ABORT, srq_timeout_s=2.0
        ).run(yes)
        assert result.state is CalState.ABORTED
        assert result.history[-2] is CalState.WAITING_ZERO_COMPLETE
        assert isinstance(result.error, WriteError)
        assert "C1" not in buses[14].commands

    def test_abort_policy_failure_while_saving_is_reported(self, sessions, buses):
        buses[14] = FakeBus(fail_on={"C0"})
        sessions.connect_all()
        result = CalibrationOrchestrator(
            sessions, policy=SendFailurePolicy.ABORT, srq_timeout_s=2.0
        ).run(yes)
        assert result.state is CalState.COMPLETE
        assert result.failed_commands == ["C0"]
        assert not result.ok
