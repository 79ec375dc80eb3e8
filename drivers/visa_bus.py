import threading

from loguru import logger

from core.errors import InstrumentConnectionError, ReadError, WriteError

try:
    import pyvisa
    from pyvisa import constants
    HAS_VISA = True
except Exception:
    pyvisa = None
    constants = None
    HAS_VISA = False


class VisaBus:
    """Сырой ввод-вывод одного GPIB-ресурса через PyVISA.
    Ошибки VISA превращаются в WriteError / ReadError / InstrumentConnectionError."""

    def __init__(self, backend_order, read_term="\n", write_term="\n"):
        if not HAS_VISA:
            raise InstrumentConnectionError("PyVISA is not installed")
        self.backend_order = backend_order
        self.rm = None
        self.inst = None
        self.resource = None
        self.backend_in_use = None
        self.read_term = read_term
        self.write_term = write_term
        self._srq_handler = None
        self._lock = threading.RLock()

    @property
    def is_open(self) -> bool:
        return self.inst is not None

    def _close_unlocked(self):
        if self.inst is not None:
            if self._srq_handler is not None:
                try:
                    self.inst.disable_event(
                        constants.EventType.service_request, constants.EventMechanism.all
                    )
                    self.inst.uninstall_handler(
                        constants.EventType.service_request, self._srq_handler
                    )
                except pyvisa.errors.Error as e:
                    logger.debug("{}: could not remove SRQ handler: {}", self.resource, e)
            try:
                self.inst.close()
            except pyvisa.errors.Error as e:
                logger.debug("{}: close failed: {}", self.resource, e)
        if self.rm is not None:
            try:
                self.rm.close()
            except pyvisa.errors.Error as e:
                logger.debug("ResourceManager close failed: {}", e)
        self._srq_handler = None
        self.inst = None
        self.rm = None
        self.resource = None
        self.backend_in_use = None

    def connect(self, resource: str, timeout_ms: int = 2000):
        """Пробуем backend'ы по порядку; первый успешный остаётся."""
        with self._lock:
            self._close_unlocked()

            last_err = None
            for be in self.backend_order:
                try:
                    self.rm = pyvisa.ResourceManager(be) if be else pyvisa.ResourceManager()
                    self.inst = self.rm.open_resource(resource)
                    self.inst.timeout = timeout_ms
                    self.inst.read_termination = self.read_term
                    self.inst.write_termination = self.write_term
                    self.inst.clear()
                    self.backend_in_use = be or "default"
                    self.resource = resource
                    logger.debug("{} opened via backend '{}'", resource, self.backend_in_use)
                    return
                except Exception as e:
                    logger.debug("{}: backend '{}' failed: {}", resource, be or "default", e)
                    last_err = e
                    self._close_unlocked()
            raise InstrumentConnectionError(
                f"Could not open {resource}: {last_err or 'no VISA backend'}"
            )

    def close(self):
        with self._lock:
            self._close_unlocked()

    def write(self, cmd: str):
        with self._lock:
            if not self.inst:
                raise WriteError("Not connected")
            try:
                self.inst.write(cmd)
            except pyvisa.errors.Error as e:
                raise WriteError(str(e)) from e

    def read(self) -> str:
        with self._lock:
            if not self.inst:
                raise ReadError("Not connected")
            try:
                return self.inst.read()
            except pyvisa.errors.Error as e:
                raise ReadError(str(e)) from e

    def clear(self):
        with self._lock:
            if not self.inst:
                raise WriteError("Not connected")
            try:
                self.inst.clear()
            except pyvisa.errors.Error as e:
                raise WriteError(str(e)) from e

    def read_stb(self) -> int:
        with self._lock:
            return self.inst.read_stb()

    def discard_srq(self):
        with self._lock:
            self.inst.discard_events(
                constants.EventType.service_request, constants.EventMechanism.all
            )

    def on_srq(self, callback):
        """callback() вызывается из потока драйвера VISA."""
        def _handler(resource, event, user_handle):
            callback()

        with self._lock:
            self._srq_handler = self.inst.wrap_handler(_handler)
            self.inst.install_handler(constants.EventType.service_request, self._srq_handler)
            self.inst.enable_event(
                constants.EventType.service_request, constants.EventMechanism.handler
            )
