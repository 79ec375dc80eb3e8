class InstrumentError(Exception):
    """Базовое исключение стенда."""


class InstrumentConnectionError(InstrumentError):
    """Открытие ресурса или проба (IP) не удались."""


class WriteError(InstrumentError):
    pass


class ReadError(InstrumentError):
    pass


class NotReady(InstrumentError):
    """Нужный канал не подключён (или подключён, когда не должен)."""


class WaitTimeout(InstrumentError):
    pass


class CalibrationAborted(InstrumentError):
    pass


class InvalidFrequency(InstrumentError, ValueError):
    pass


class AddressError(InstrumentError, ValueError):
    pass


class CalTableError(InstrumentError):
    """Файл таблицы калибровочных коэффициентов не читается."""
