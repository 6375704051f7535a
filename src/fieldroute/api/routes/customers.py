"""Customer (sale) endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, status

from ...models.domain import Profile
from ...persistence.store import FieldStore
from ...schemas.customers import CustomerCreateRequest, CustomerModel
from ...services.customers import register_customer
from ..dependencies import get_current_actor, get_store

router = APIRouter(prefix="/customers", tags=["customers"])


@router.post("", response_model=CustomerModel, status_code=status.HTTP_201_CREATED)
async def create_customer(
    payload: CustomerCreateRequest,
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> CustomerModel:
    customer = await register_customer(store, actor, payload)
    return CustomerModel(**asdict(customer))
