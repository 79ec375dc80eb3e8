import threading

from loguru import logger

from core.constants import (
    CMD_CAL_SOURCE_ON, CMD_SRQ_ARM, CMD_SRQ_CLEAR, CMD_ZERO, FAKE_BACKEND,
)
from core.errors import InstrumentConnectionError, ReadError, WriteError

RQS = 0x40


class FakeBus:
    """Симулятор GPIB-прибора с тем же интерфейсом, что и VisaBus.
       Backend: 'FAKE'.
       После ZR или C1 взвод маски (22.3SP) через srq_delay_s поднимает SRQ.
    """
    def __init__(self, *_args, absent=False, fail_on=(), auto_srq=True,
                 srq_delay_s=0.01, response="", **_kwargs):
        self._lock = threading.RLock()
        self.absent = absent
        self.fail_on = set(fail_on)
        self.auto_srq = auto_srq
        self.srq_delay_s = srq_delay_s
        self.response = response
        self.inst = None
        self.resource = None
        self.backend_in_use = None
        self.timeout_ms = None
        self.commands = []
        self.clears = 0
        self.discards = 0
        self._stb = 0
        self._srq_callback = None
        self._busy = False      # ZR / C1 ещё не завершены
        self._armed = False
        self._timer = None

    @property
    def is_open(self) -> bool:
        return self.inst is not None

    def connect(self, resource: str, timeout_ms: int = 2000):
        if self.absent:
            raise InstrumentConnectionError(f"Could not open {resource}: no listener")
        with self._lock:
            self.inst = True
            self.resource = resource
            self.backend_in_use = FAKE_BACKEND
            self.timeout_ms = timeout_ms
            self.clears += 1

    def close(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._srq_callback = None
            self.inst = None

    def write(self, cmd: str):
        with self._lock:
            if not self.inst:
                raise WriteError("Not connected")
            if cmd in self.fail_on:
                raise WriteError(f"Simulated write failure on {cmd!r}")
            self.commands.append(cmd)
            if cmd in (CMD_ZERO, CMD_CAL_SOURCE_ON):
                self._busy = True
            elif cmd == CMD_SRQ_CLEAR:
                self._armed = False
            elif cmd == CMD_SRQ_ARM:
                self._armed = True
                if self._busy and self.auto_srq:
                    self._timer = threading.Timer(self.srq_delay_s, self.fire_srq)
                    self._timer.daemon = True
                    self._timer.start()

    def read(self) -> str:
        with self._lock:
            if not self.inst:
                raise ReadError("Not connected")
            if not self.response:
                raise ReadError("Timeout expired before operation completed")
            return self.response

    def clear(self):
        with self._lock:
            if not self.inst:
                raise WriteError("Not connected")
            self.clears += 1

    def read_stb(self) -> int:
        with self._lock:
            stb, self._stb = self._stb, 0
            return stb

    def discard_srq(self):
        with self._lock:
            self.discards += 1

    def on_srq(self, callback):
        self._srq_callback = callback

    def fire_srq(self):
        """Поднять SRQ вручную (или по таймеру после взвода маски)."""
        with self._lock:
            self._busy = False
            self._stb |= RQS
            callback = self._srq_callback
        if callback is None:
            logger.debug("{}: SRQ raised with no handler installed", self.resource)
            return
        callback()
