"""
Validators
Validacao de CNPJ e formatacao de dados brasileiros
"""

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

CEP_PATTERN = re.compile(r"\d{5}-?\d{3}")
THOUSANDS_PATTERN = re.compile(r"\d{1,3}(?:\.\d{3}){2,}")


def clean_digits(value: Any) -> str:
    """Remove tudo que nao for digito"""
    if value is None:
        return ""
    return "".join(filter(str.isdigit, str(value)))


def _check_digit(digits: str, weight: int) -> int:
    total = 0
    for digit in digits:
        total += int(digit) * weight
        weight = 9 if weight == 2 else weight - 1
    remainder = total % 11
    return 0 if remainder < 2 else 11 - remainder


def validate_cnpj(tax_id: str) -> bool:
    """
    Valida CNPJ pelos digitos verificadores (modulo 11).

    Args:
        tax_id: CNPJ com ou sem formatacao

    Returns:
        True se o CNPJ tem 14 digitos, nao e sequencia repetida
        e os dois digitos verificadores conferem
    """
    digits = clean_digits(tax_id)

    if len(digits) != 14:
        return False
    if digits == digits[0] * 14:
        return False

    if _check_digit(digits[:12], 5) != int(digits[12]):
        return False
    return _check_digit(digits[:13], 6) == int(digits[13])


def mask_cnpj(tax_id: str) -> str:
    """Mascara o CNPJ para logs (mantem a raiz)"""
    digits = clean_digits(tax_id)
    return digits[:8] + "****" if digits else ""


def format_cnpj(tax_id: str) -> str:
    """00000000000000 -> 00.000.000/0000-00"""
    d = clean_digits(tax_id)
    if len(d) != 14:
        return tax_id
    return f"{d[:2]}.{d[2:5]}.{d[5:8]}/{d[8:12]}-{d[12:]}"


def format_phone(phone: Any) -> str:
    """
    Formata telefone brasileiro.

    10 digitos -> (DD) DDDD-DDDD, 11 digitos -> (DD) DDDDD-DDDD.
    Qualquer outro tamanho volta sem alteracao.
    """
    if not phone:
        return ""
    d = clean_digits(phone)
    if len(d) == 10:
        return f"({d[:2]}) {d[2:6]}-{d[6:]}"
    if len(d) == 11:
        return f"({d[:2]}) {d[2:7]}-{d[7:]}"
    return str(phone)


def extract_cep(text: str) -> Optional[str]:
    """Extrai o primeiro CEP do texto (apenas digitos)"""
    if not text:
        return None
    match = CEP_PATTERN.search(text)
    return clean_digits(match.group(0)) if match else None


def parse_brl_amount(value: Any) -> Optional[Decimal]:
    """
    Converte valor monetario para Decimal.

    Aceita numeros, "1500.00", "1.500,00" e "R$ 1.500,00".
    Retorna None para valores ausentes, nao numericos ou nao finitos.
    """
    if value is None or value == "":
        return None
    if isinstance(value, (int, float, Decimal)):
        text = str(value)
    else:
        text = str(value).replace("R$", "").strip()
        if "," in text or THOUSANDS_PATTERN.fullmatch(text):
            text = text.replace(".", "").replace(",", ".")

    try:
        result = Decimal(text)
    except InvalidOperation:
        return None
    return result if result.is_finite() else None


def round_money(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def format_brl(value: Decimal) -> str:
    """Decimal("1234.5") -> "R$ 1.234,50" """
    text = f"{round_money(value):,.2f}"
    return "R$ " + text.replace(",", "X").replace(".", ",").replace("X", ".")


def parse_date(value: Any) -> Optional[date]:
    """Converte "dd/mm/yyyy" ou ISO "yyyy-mm-dd" para date"""
    if not value:
        return None
    text = str(value).strip()
    for fmt in ("%d/%m/%Y", "%Y-%m-%d"):
        try:
            return datetime.strptime(text[:10], fmt).date()
        except ValueError:
            continue
    return None
