from datetime import date, datetime
from decimal import Decimal

import pytest

from rhsign.utils.formatting import (
    currency_to_words,
    format_cnpj,
    format_cpf,
    format_currency,
    format_date,
    format_long_date,
    mask_cpf,
    number_to_words,
)


def test_document_numbers_are_formatted() -> None:
    assert format_cpf("12345678909") == "123.456.789-09"
    assert format_cpf("123.456.789-09") == "123.456.789-09"
    assert format_cnpj("12345678000195") == "12.345.678/0001-95"
    assert format_cpf(None) == ""
    assert mask_cpf("123.456.789-09") == "***.456.789-**"


def test_currency_uses_brazilian_separators() -> None:
    assert format_currency(Decimal("4500")) == "R$ 4.500,00"
    assert format_currency(1234567.891) == "R$ 1.234.567,89"
    assert format_currency(Decimal("0.5")) == "R$ 0,50"


def test_dates_short_and_long() -> None:
    assert format_date(date(2026, 10, 18)) == "18/10/2026"
    assert format_date(datetime(2024, 3, 1, 8, 0)) == "01/03/2024"
    assert format_long_date(date(2026, 10, 18)) == "18 de outubro de 2026"
    assert format_long_date(None) == ""


@pytest.mark.parametrize(
    ("number", "expected"),
    [
        (0, "zero"),
        (16, "dezesseis"),
        (21, "vinte e um"),
        (100, "cem"),
        (101, "cento e um"),
        (1000, "mil"),
        (1001, "mil e um"),
        (1234, "mil duzentos e trinta e quatro"),
        (4500, "quatro mil e quinhentos"),
        (1_000_000, "um milhão"),
        (2_500_000, "dois milhões e quinhentos mil"),
    ],
)
def test_number_to_words(number: int, expected: str) -> None:
    assert number_to_words(number) == expected


def test_currency_to_words() -> None:
    assert currency_to_words(Decimal("4500.50")) == "quatro mil e quinhentos reais e cinquenta centavos"
    assert currency_to_words(1) == "um real"
    assert currency_to_words(Decimal("0.01")) == "um centavo"
    assert currency_to_words(1_000_000) == "um milhão de reais"
    assert currency_to_words(None) == "zero reais"
