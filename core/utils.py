from decimal import Decimal, ROUND_HALF_UP

_CENT = Decimal("0.01")


def format_number(value: float) -> str:
    """Кратчайшее точное представление числа для команды:
    3.0 -> '3', 2.62053 -> '2.62053', -70.0 -> '-70'."""
    text = repr(float(value))
    if "e" in text or "E" in text:
        # 1e-05 -> 1E-05
        return text.upper()
    if text.endswith(".0"):
        text = text[:-2]
    return text


def format_fixed2(value) -> str:
    """Фиксированная точка, 2 знака, округление от нуля по десятичному значению."""
    return str(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))
