"""Formatação de valores no padrão brasileiro (CPF, CNPJ, moeda, datas e extenso)."""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

MONTHS = (
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
)

_UNITS = (
    "zero", "um", "dois", "três", "quatro", "cinco", "seis", "sete", "oito", "nove",
    "dez", "onze", "doze", "treze", "quatorze", "quinze", "dezesseis", "dezessete", "dezoito", "dezenove",
)
_TENS = ("", "", "vinte", "trinta", "quarenta", "cinquenta", "sessenta", "setenta", "oitenta", "noventa")
_HUNDREDS = (
    "", "cento", "duzentos", "trezentos", "quatrocentos",
    "quinhentos", "seiscentos", "setecentos", "oitocentos", "novecentos",
)
_SCALES = (("", ""), ("mil", "mil"), ("milhão", "milhões"), ("bilhão", "bilhões"))


def only_digits(value: str | None) -> str:
    if not value:
        return ""
    return "".join(ch for ch in str(value) if ch.isdigit())


def format_cpf(value: str | None) -> str:
    digits = only_digits(value)
    if len(digits) != 11:
        return (value or "").strip()
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def mask_cpf(value: str | None) -> str:
    """CPF parcialmente oculto para logs (ex.: ***.456.789-**)."""
    digits = only_digits(value)
    if len(digits) != 11:
        return "***"
    return f"***.{digits[3:6]}.{digits[6:9]}-**"


def format_cnpj(value: str | None) -> str:
    digits = only_digits(value)
    if len(digits) != 14:
        return (value or "").strip()
    return f"{digits[:2]}.{digits[2:5]}.{digits[5:8]}/{digits[8:12]}-{digits[12:]}"


def _to_decimal(value: Decimal | float | int | str | None) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def format_currency(value: Decimal | float | int | str | None) -> str:
    amount = _to_decimal(value)
    text = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    sign = "-" if amount < 0 else ""
    return f"{sign}R$ {text}"


def format_date(value: date | datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def format_long_date(value: date | datetime | None) -> str:
    if value is None:
        return ""
    return f"{value.day} de {MONTHS[value.month - 1]} de {value.year}"


def month_name(value: date | datetime) -> str:
    return MONTHS[value.month - 1]


def _below_thousand(number: int) -> str:
    if number == 100:
        return "cem"
    parts: list[str] = []
    hundreds, rest = divmod(number, 100)
    if hundreds:
        parts.append(_HUNDREDS[hundreds])
    if rest:
        if rest < 20:
            parts.append(_UNITS[rest])
        else:
            tens, units = divmod(rest, 10)
            parts.append(_TENS[tens] if not units else f"{_TENS[tens]} e {_UNITS[units]}")
    return " e ".join(parts)


def number_to_words(number: int) -> str:
    if number < 0:
        return f"menos {number_to_words(-number)}"
    if number == 0:
        return "zero"

    groups: list[int] = []
    while number:
        number, group = divmod(number, 1000)
        groups.append(group)
    if len(groups) > len(_SCALES):
        raise ValueError("Valor muito grande para conversão por extenso.")

    parts: list[tuple[int, str]] = []
    for index in range(len(groups) - 1, -1, -1):
        group = groups[index]
        if not group:
            continue
        singular, plural = _SCALES[index]
        if index == 0:
            words = _below_thousand(group)
        elif index == 1:
            words = "mil" if group == 1 else f"{_below_thousand(group)} mil"
        else:
            words = f"{_below_thousand(group)} {singular if group == 1 else plural}"
        parts.append((group, words))

    text = parts[0][1]
    for group, words in parts[1:]:
        joiner = " e " if group < 100 or group % 100 == 0 else " "
        text = f"{text}{joiner}{words}"
    return text


def currency_to_words(value: Decimal | float | int | str | None) -> str:
    amount = abs(_to_decimal(value))
    reais = int(amount)
    centavos = int((amount - reais) * 100)

    parts: list[str] = []
    if reais:
        unit = "real" if reais == 1 else "reais"
        if reais >= 1_000_000 and reais % 1_000_000 == 0:
            unit = f"de {unit}"
        parts.append(f"{number_to_words(reais)} {unit}")
    if centavos:
        parts.append(f"{number_to_words(centavos)} {'centavo' if centavos == 1 else 'centavos'}")
    if not parts:
        return "zero reais"
    return " e ".join(parts)
