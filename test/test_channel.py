import pytest
from loguru import logger

from core.channel import CommandChannel, default_bus_factory
from core.errors import InstrumentConnectionError, ReadError
from drivers.fake_bus import FakeBus
from drivers.visa_bus import VisaBus


class ExplodingStbBus(FakeBus):
    def read_stb(self):
        raise ReadError("serial poll failed")


class TestOpen:
    def test_open_probes_with_ip(self):
        bus = FakeBus()
        ch = CommandChannel(14, bus, name="HP 8902A")
        ch.open()
        assert ch.is_connected
        assert bus.resource == "GPIB0::14::INSTR"
        assert bus.timeout_ms == 2000
        assert bus.commands == ["IP"]

    def test_absent_device_raises_and_leaves_nothing_open(self):
        bus = FakeBus(absent=True)
        ch = CommandChannel(14, bus)
        with pytest.raises(InstrumentConnectionError):
            ch.open()
        assert not ch.is_connected
        assert not bus.is_open

    def test_failed_probe_means_not_connected(self):
        bus = FakeBus(fail_on={"IP"})
        ch = CommandChannel(14, bus)
        with pytest.raises(InstrumentConnectionError, match="failed to connect"):
            ch.open()
        assert not ch.is_connected
        assert not bus.is_open

    def test_close_is_idempotent(self):
        ch = CommandChannel(14, FakeBus())
        ch.open()
        ch.close()
        ch.close()
        assert not ch.is_connected


class TestIo:
    @pytest.fixture
    def bus(self):
        return FakeBus(response="-12.34E+00")

    @pytest.fixture
    def channel(self, bus):
        ch = CommandChannel(14, bus)
        ch.open()
        yield ch
        ch.close()

    def test_send_returns_true(self, channel, bus):
        assert channel.send("M4T0")
        assert bus.commands[-1] == "M4T0"

    def test_send_failure_is_reported_not_raised(self, channel, bus):
        bus.fail_on.add("ZR")
        assert channel.send("ZR") is False
        assert "ZR" not in bus.commands

    def test_send_on_closed_channel_is_false(self, channel):
        channel.close()
        assert channel.send("ZR") is False

    def test_query_returns_line(self, channel):
        assert channel.query("RD") == "-12.34E+00"

    def test_query_without_response_is_empty(self, channel, bus):
        bus.response = ""
        assert channel.query("RD") == ""

    def test_query_without_response_warns(self, channel, bus):
        bus.response = ""
        messages = []
        sink = logger.add(messages.append, level="WARNING", format="{level}|{message}")
        try:
            channel.query("RD")
        finally:
            logger.remove(sink)
        assert any(m.startswith("WARNING|") and "no response to 'RD'" in m for m in messages)

    def test_query_with_response_does_not_warn(self, channel):
        messages = []
        sink = logger.add(messages.append, level="WARNING")
        try:
            channel.query("RD")
        finally:
            logger.remove(sink)
        assert messages == []

    def test_clear(self, channel, bus):
        before = bus.clears
        assert channel.clear()
        assert bus.clears == before + 1


class TestServiceRequest:
    def test_handler_clears_status_then_releases(self):
        bus = FakeBus(auto_srq=False)
        ch = CommandChannel(14, bus)
        ch.open()
        bus.fire_srq()
        assert bus.discards == 1
        assert bus.commands[-1] == "*CLS"
        assert ch.srq.pending
        ch.srq.wait(timeout=0.5)

    def test_handler_error_does_not_release(self):
        bus = ExplodingStbBus(auto_srq=False)
        ch = CommandChannel(14, bus)
        ch.open()
        bus.fire_srq()
        assert not ch.srq.pending
        assert "*CLS" not in bus.commands

    def test_each_channel_has_own_signal(self):
        a = CommandChannel(14, FakeBus())
        b = CommandChannel(19, FakeBus())
        assert a.srq is not b.srq


class TestBusFactory:
    def test_fake_backend(self):
        assert isinstance(default_bus_factory(["FAKE"])(14), FakeBus)

    def test_visa_backend(self):
        pytest.importorskip("pyvisa")
        assert isinstance(default_bus_factory(["@py"])(14), VisaBus)

    def test_visa_session_errors_stay_inside_channel(self):
        pyvisa = pytest.importorskip("pyvisa")

        class DeadSession:
            def write(self, cmd):
                raise pyvisa.errors.InvalidSession()

            def read(self):
                raise pyvisa.errors.InvalidSession()

            def clear(self):
                raise pyvisa.errors.InvalidSession()

        bus = VisaBus(["@py"])
        bus.inst = DeadSession()
        ch = CommandChannel(14, bus)
        assert ch.send("ZR") is False
        assert ch.query("RD") == ""
        assert ch.clear() is False

    def test_visa_open_without_bus_raises_connection_error(self):
        pytest.importorskip("pyvisa_py")
        ch = CommandChannel(14, VisaBus(["@py"]))
        with pytest.raises(InstrumentConnectionError):
            ch.open()
        assert not ch.is_connected
