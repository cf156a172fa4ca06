from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Literal

PaymentStatus = Literal["completed", "pending", "failed"]


@dataclass(frozen=True, slots=True)
class PaymentRecord:
    date: date
    amount: int  # COP, no minor units
    status: PaymentStatus
    method: str


@dataclass(frozen=True, slots=True)
class PaymentMethod:
    name: str
    steps: tuple[str, ...]
    payee_number: str
    receipt_url: str
