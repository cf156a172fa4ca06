from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from sharedplan.api.dependencies import require_user
from sharedplan.core.config import SETTINGS
from sharedplan.models.payment import PaymentMethod
from sharedplan.models.principal import Principal
from sharedplan.services import payments

router = APIRouter(prefix="/v1/payment-methods", tags=["payments"])


class PaymentMethodOut(BaseModel):
    name: str
    steps: list[str]
    payeeNumber: str
    receiptUrl: str

    @staticmethod
    def of(method: PaymentMethod) -> PaymentMethodOut:
        return PaymentMethodOut(
            name=method.name,
            steps=list(method.steps),
            payeeNumber=method.payee_number,
            receiptUrl=method.receipt_url,
        )


@router.get("", response_model=list[PaymentMethodOut])
async def list_methods(
    principal: Annotated[Principal, Depends(require_user)],
) -> list[PaymentMethodOut]:
    return [
        PaymentMethodOut.of(m)
        for m in payments.payment_methods(
            SETTINGS.payment_phone, SETTINGS.support_chat_url
        )
    ]


@router.get("/{method}", response_model=PaymentMethodOut)
async def get_method(
    method: str, principal: Annotated[Principal, Depends(require_user)]
) -> PaymentMethodOut:
    try:
        found = payments.payment_method(
            method, SETTINGS.payment_phone, SETTINGS.support_chat_url
        )
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": f"Unknown payment method {method!r}"},
        ) from None
    return PaymentMethodOut.of(found)
