import threading
from typing import Optional

from loguru import logger

from core.errors import CalibrationAborted, WaitTimeout


class SrqSignal:
    """Однослотовый сигнал между обработчиком SRQ и основным потоком.

    release() вызывается из потока драйвера и никогда не блокирует;
    слот насыщается на 1. wait() потребляет ровно один release().
    Ожидающий поток может быть только один.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._cond = threading.Condition()
        self._pending = 0
        self._cancelled = False

    @property
    def pending(self) -> bool:
        with self._cond:
            return self._pending > 0

    def release(self):
        with self._cond:
            if self._pending:
                logger.debug("SRQ {}: slot already full, release dropped", self.name)
            self._pending = 1
            self._cond.notify()

    def wait(self, timeout: Optional[float] = None):
        """Блокирует до release(). timeout=None: ждать бесконечно."""
        with self._cond:
            ready = self._cond.wait_for(
                lambda: self._pending or self._cancelled, timeout=timeout
            )
            if self._cancelled:
                self._cancelled = False
                raise CalibrationAborted(f"Wait on {self.name or 'SRQ'} cancelled")
            if not ready:
                raise WaitTimeout(
                    f"No service request from {self.name or 'instrument'} within {timeout} s"
                )
            self._pending = 0

    def cancel(self):
        with self._cond:
            self._cancelled = True
            self._cond.notify_all()

    def reset(self, clear_cancel: bool = False):
        # перед взводом маски: сбросить устаревший сигнал
        with self._cond:
            self._pending = 0
            if clear_cancel:
                self._cancelled = False
