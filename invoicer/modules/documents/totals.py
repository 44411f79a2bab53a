"""
Cálculo de totales de documentos (facturas y cotizaciones).

Funciones puras: no tocan la base de datos ni modifican los items recibidos,
así que llamar dos veces con la misma entrada produce el mismo resultado.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Iterable, Optional, Tuple

from invoicer.common.exceptions import ValidationError

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total: Decimal
    line_amounts: Tuple[Decimal, ...] = ()


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _to_decimal(value: Any, field: str) -> Decimal:
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} no es un número válido: {value!r}")


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def _rate(value: Any, field: str) -> Optional[Decimal]:
    if value is None:
        return None
    rate = _to_decimal(value, field)
    if rate < 0 or rate > 1:
        raise ValidationError(f"{field} debe estar entre 0 y 1")
    return rate


def _non_negative(value: Any, field: str) -> Decimal:
    amount = _to_decimal(value, field)
    if amount < 0:
        raise ValidationError(f"{field} no puede ser negativo")
    return amount


def _line_value(quantity: Any, unit_price: Any, tax_rate: Any, discount_rate: Any) -> Decimal:
    if quantity is None or unit_price is None:
        raise ValidationError("quantity y unit_price son obligatorios")

    base = _non_negative(quantity, "quantity") * _non_negative(unit_price, "unit_price")
    discount_rate = _rate(discount_rate, "discount_rate")
    tax_rate = _rate(tax_rate, "tax_rate")

    discount = base * discount_rate if discount_rate is not None else Decimal(0)
    taxable = base - discount
    tax = taxable * tax_rate if tax_rate is not None else Decimal(0)

    return taxable + tax


def compute_line_amount(
    quantity: Any,
    unit_price: Any,
    tax_rate: Any = None,
    discount_rate: Any = None
) -> Decimal:
    """
    Monto de una línea: quantity × unit_price, menos el descuento de la línea,
    más el impuesto de la línea aplicado sobre la base ya descontada.
    """
    return _round(_line_value(quantity, unit_price, tax_rate, discount_rate))


def compute_totals(
    items: Iterable[Any],
    discount_amount: Any = None,
    tax_rate: Any = None,
    tax_amount: Any = None,
    discount_rate: Any = None
) -> DocumentTotals:
    """
    Calcular subtotal, impuesto, descuento y total de un documento.

    Args:
        items: dicts u objetos con quantity, unit_price y opcionalmente
            tax_rate / discount_rate por línea
        discount_amount: descuento explícito; tiene prioridad sobre discount_rate
        tax_rate: tasa de impuesto del documento (0-1) sobre el subtotal
        tax_amount: impuesto explícito; tiene prioridad sobre tax_rate
        discount_rate: tasa de descuento del documento (0-1) sobre el subtotal

    Returns:
        DocumentTotals con total = max(0, subtotal - descuento + impuesto)
    """
    # Se suma sin redondear; solo el subtotal y el monto mostrado por línea se redondean
    line_values = [
        _line_value(
            _field(item, "quantity"),
            _field(item, "unit_price"),
            tax_rate=_field(item, "tax_rate"),
            discount_rate=_field(item, "discount_rate"),
        )
        for item in items
    ]
    line_amounts = tuple(_round(value) for value in line_values)
    subtotal = _round(sum(line_values, ZERO))

    # Impuesto y descuento: el monto explícito gana sobre la tasa
    if tax_amount is not None:
        tax = _round(_non_negative(tax_amount, "tax_amount"))
    else:
        rate = _rate(tax_rate, "tax_rate")
        tax = _round(subtotal * rate) if rate is not None else ZERO

    if discount_amount is not None:
        discount = _round(_non_negative(discount_amount, "discount_amount"))
    else:
        rate = _rate(discount_rate, "discount_rate")
        discount = _round(subtotal * rate) if rate is not None else ZERO

    total = max(ZERO, subtotal - discount + tax)

    return DocumentTotals(
        subtotal=subtotal,
        tax_amount=tax,
        discount_amount=discount,
        total=_round(total),
        line_amounts=line_amounts,
    )
