"""Sale registration downstream of visits."""

from __future__ import annotations

import logging
import uuid

from ..models.domain import Customer, Profile
from ..persistence.store import FieldStore
from ..schemas.customers import CustomerCreateRequest
from .errors import NotFoundError

logger = logging.getLogger(__name__)


async def register_customer(store: FieldStore, actor: Profile, payload: CustomerCreateRequest) -> Customer:
    if payload.poi_id and await store.get_poi(payload.poi_id) is None:
        raise NotFoundError(f"Point of interest '{payload.poi_id}' not found.")

    customer = Customer(
        id=str(uuid.uuid4()),
        full_name=payload.full_name.strip(),
        seller_id=actor.id,
        document_id=payload.document_id,
        email=payload.email,
        phone=payload.phone,
        address=payload.address,
        course=payload.course,
        enrollment_fee=payload.enrollment_fee,
        monthly_fee=payload.monthly_fee,
        installments=payload.installments,
        note=payload.note,
        status=payload.status,
        poi_id=payload.poi_id,
    )
    stored = await store.insert_customer(customer)
    logger.info(f"Customer {stored.id} registered by {actor.id} (status={stored.status.value})")
    return stored
