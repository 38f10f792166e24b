"""
Billing Calculator
Total = sum of service prices - discount + tax, rounded half-up to cents.
"""
import logging
import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional

from pms.models import BillingRecord

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')


def to_decimal(value) -> Optional[Decimal]:
    """
    Convert a JSON number (or numeric string) to Decimal.

    Floats go through their shortest string form so 50.999 stays 50.999
    instead of its binary approximation. Returns None for anything that is
    not a finite number; booleans are not numbers here.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return Decimal(repr(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            return None
        return amount if amount.is_finite() else None
    return None


def _amount(value, label) -> Decimal:
    amount = to_decimal(value)
    if amount is None:
        raise ValueError(f'{label} is not a number: {value!r}')
    return amount


def _price_of(service) -> Decimal:
    price = service.get('price') if isinstance(service, dict) else service
    return _amount(price, 'Service price')


def compute_total(services: Iterable, tax=None, discount=None) -> Decimal:
    """
    Compute a bill total.

    Args:
        services: sequence of {name, price} mappings (or bare prices)
        tax: absolute amount added after the discount (optional)
        discount: absolute amount subtracted from the services sum (optional)

    Returns:
        Decimal: total rounded to 2 decimal places, half-up.
        A negative total is returned as-is.
    """
    subtotal = sum((_price_of(service) for service in services), Decimal('0'))

    if discount is not None:
        subtotal -= _amount(discount, 'Discount')
    if tax is not None:
        subtotal += _amount(tax, 'Tax')

    return subtotal.quantize(CENTS, rounding=ROUND_HALF_UP)


def create_billing_record(store, normalized, created_by=None):
    """
    Persist a billing record from validated fields; total is derived here.

    The caller has already checked the patient exists and owns the commit.
    """
    total = compute_total(
        normalized['services'],
        tax=normalized.get('tax'),
        discount=normalized.get('discount'),
    )
    record = BillingRecord(
        patient_id=normalized['patient_id'],
        tax=normalized.get('tax'),
        discount=normalized.get('discount'),
        total=total,
        created_by=created_by,
    )
    record.services = [
        {'name': service['name'], 'price': float(service['price'])}
        for service in normalized['services']
    ]
    store.add(record)
    logger.info("Billing record %s created for patient %s: total=%s", record.id, record.patient_id, total)
    return record
