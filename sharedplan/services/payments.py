from __future__ import annotations

from datetime import date

from sharedplan.models.payment import PaymentMethod, PaymentRecord

# Placeholder history shown on every dashboard until real payments exist
PAYMENT_HISTORY: tuple[PaymentRecord, ...] = (
    PaymentRecord(date=date(2024, 2, 1), amount=50000, status="completed", method="Nequi"),
    PaymentRecord(date=date(2024, 1, 1), amount=50000, status="completed", method="Daviplata"),
)

_PAY_TO = "Escribe el monto a pagar y envíalo al siguiente número: {phone}"
_NUMBER = "Escribe el número: {phone}"
_ATTACH = "Adjuntar comprobante: {chat}"

_STEPS: dict[str, tuple[str, ...]] = {
    "Nequi": (
        "Abre tu app Nequi",
        'Selecciona la opción "envia" y luego "nequi"',
        _PAY_TO,
        _ATTACH,
    ),
    "Daviplata": (
        "Abre tu app Daviplata",
        'Selecciona la opción "Pasar Plata" y luego "A Daviplata"',
        _NUMBER,
        "Escribe el monto a pagar",
        _ATTACH,
    ),
    "Rappi": (
        "Abre tu app Rappi",
        "Selecciona Rappi cuenta",
        'Selecciona "enviar dinero" y "contactos rappi"',
        'Selecciona el botón "enviar a otro"',
        _NUMBER,
        _ATTACH,
    ),
}

METHOD_NAMES: tuple[str, ...] = tuple(_STEPS)


def payment_history() -> list[PaymentRecord]:
    return list(PAYMENT_HISTORY)


def payment_methods(phone: str, chat_url: str) -> list[PaymentMethod]:
    return [payment_method(name, phone, chat_url) for name in METHOD_NAMES]


def payment_method(name: str, phone: str, chat_url: str) -> PaymentMethod:
    """Instructions for one method; lookup is case-insensitive.

    Raises KeyError for unknown methods.
    """
    canonical = next((m for m in METHOD_NAMES if m.lower() == name.lower()), None)
    if canonical is None:
        raise KeyError(name)
    steps = tuple(s.format(phone=phone, chat=chat_url) for s in _STEPS[canonical])
    return PaymentMethod(
        name=canonical, steps=steps, payee_number=phone, receipt_url=chat_url
    )
