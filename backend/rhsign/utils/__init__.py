from rhsign.utils.formatting import (
    currency_to_words,
    format_cnpj,
    format_cpf,
    format_currency,
    format_date,
    format_long_date,
    number_to_words,
    only_digits,
)
from rhsign.utils.security import create_access_token, decode_token

__all__ = [
    "create_access_token",
    "currency_to_words",
    "decode_token",
    "format_cnpj",
    "format_cpf",
    "format_currency",
    "format_date",
    "format_long_date",
    "number_to_words",
    "only_digits",
]
