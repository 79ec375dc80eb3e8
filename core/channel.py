from loguru import logger

from core.constants import (
    CMD_CLEAR_STATUS, CMD_PROBE, FAKE_BACKEND, GPIB_BOARD, GPIB_RESOURCE,
    READ_TERM, TIMEOUT_MS, WRITE_TERM,
)
from core.errors import InstrumentConnectionError, ReadError, WriteError
from core.srq import SrqSignal
from drivers.fake_bus import FakeBus
from drivers.visa_bus import VisaBus


def default_bus_factory(backend_order):
    """VisaBus для реального прибора, FakeBus при backend 'FAKE'."""
    def factory(address: int):
        if [b.upper() for b in backend_order] == [FAKE_BACKEND]:
            return FakeBus()
        return VisaBus(backend_order, read_term=READ_TERM, write_term=WRITE_TERM)
    return factory


class CommandChannel:
    """Синхронный send/query к одному GPIB-адресу.

    Ошибки ввода-вывода не выходят за пределы канала: send() возвращает
    bool, query() возвращает пустую строку. Исключение бросает только open().
    У каждого канала собственный SrqSignal.
    """

    def __init__(self, address: int, bus, name: str = "", board: int = GPIB_BOARD,
                 timeout_ms: int = TIMEOUT_MS):
        self.address = address
        self.name = name or f"GPIB{board}::{address}"
        self.resource = GPIB_RESOURCE.format(board=board, address=address)
        self.timeout_ms = timeout_ms
        self.srq = SrqSignal(self.name)
        self._bus = bus
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected and self._bus.is_open

    @property
    def backend_in_use(self) -> str:
        return self._bus.backend_in_use or ""

    def open(self):
        """Открыть ресурс, настроить и проверить пробой IP.
        При любой ошибке ресурс закрывается и бросается InstrumentConnectionError."""
        try:
            self._bus.connect(self.resource, timeout_ms=self.timeout_ms)
            self._bus.on_srq(self._on_service_request)
        except InstrumentConnectionError:
            self._bus.close()
            raise
        except Exception as e:
            self._bus.close()
            raise InstrumentConnectionError(f"{self.name}: {e}") from e

        self._connected = True
        if not self.send(CMD_PROBE):
            self.close()
            raise InstrumentConnectionError(
                f"{self.name} failed to connect. Check GPIB address and device state."
            )
        logger.info("{} connected at {} ({})", self.name, self.resource, self.backend_in_use)

    def close(self):
        if self._bus.is_open:
            logger.debug("{}: closing", self.name)
        self._connected = False
        self._bus.close()

    def send(self, command: str) -> bool:
        try:
            self._bus.write(command)
        except WriteError as e:
            logger.error("{}: GPIB send error on {!r}: {}", self.name, command, e)
            return False
        logger.debug("{} <- {}", self.name, command)
        return True

    def read(self) -> str:
        try:
            return self._bus.read()
        except ReadError as e:
            logger.error("{}: GPIB read error: {}", self.name, e)
            return ""

    def query(self, command: str) -> str:
        self.send(command)
        response = self.read()
        if not response.strip():
            logger.warning("{}: no response to {!r}", self.name, command)
        return response

    def clear(self) -> bool:
        try:
            self._bus.clear()
        except WriteError as e:
            logger.error("{}: device clear failed: {}", self.name, e)
            return False
        return True

    def _on_service_request(self):
        # поток драйвера: снять статус, очистить очередь, *CLS, и только потом release
        try:
            stb = self._bus.read_stb()
            logger.debug("{}: SRQ, status byte 0x{:02X}", self.name, stb)
            self._bus.discard_srq()
            self.send(CMD_CLEAR_STATUS)
        except Exception:
            logger.exception("{}: SRQ handler error", self.name)
            return
        self.srq.release()

    def __repr__(self):
        state = "connected" if self.is_connected else "closed"
        return f"<CommandChannel {self.name} {self.resource} {state}>"
