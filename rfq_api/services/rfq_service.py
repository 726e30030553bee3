# rfq_api/services/rfq_service.py
"""
RFQ lifecycle: create, update, delete, fetch and list.

All functions use the caller's session (no commit). Every validation runs
before the first write, so a rejected call leaves nothing behind when
get_db() rolls the session back.
"""

from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rfq_api.errors import ConflictError, NotFoundError, ValidationFailedError
from rfq_api.middleware.authorization import Operation, authorize
from rfq_api.models.rfq import Rfq, RfqQuote
from rfq_api.schemas.rfq import (
    CategoryRef,
    PartyRef,
    ProductRef,
    QuoteResponse,
    RfqCreate,
    RfqPublicCreate,
    RfqResponse,
    RfqUpdate,
    SellerRef,
)
from rfq_api.services import rfq_store
from rfq_api.services.directory import Catalog, IdentityDirectory

logger = structlog.get_logger()

# Terminal states have no outgoing edges. Re-setting the current status is a no-op.
STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    "draft": frozenset({"published"}),
    "published": frozenset({"closed", "cancelled"}),
    "closed": frozenset(),
    "cancelled": frozenset(),
}
INITIAL_STATUSES = ("draft", "published")

# Fields an update may not clear.
_REQUIRED_FIELDS = frozenset(
    {
        "title",
        "description",
        "quantity",
        "unit",
        "distribution_type",
        "status",
        "specifications",
        "attachments",
        "target_seller_ids",
    }
)


def check_status_transition(current: str, new: str) -> None:
    if new == current:
        return
    if new not in STATUS_TRANSITIONS.get(current, frozenset()):
        raise ConflictError(
            f"Cannot change RFQ status from '{current}' to '{new}'",
            code="INVALID_STATUS_TRANSITION",
            details={
                "from": current,
                "to": new,
                "allowed": sorted(STATUS_TRANSITIONS.get(current, frozenset())),
            },
        )


# ---------- validation helpers ----------


async def _validate_references(
    catalog: Catalog,
    product_id: Optional[str] = None,
    category_id: Optional[str] = None,
) -> None:
    if product_id and not await catalog.product_exists(product_id):
        raise NotFoundError("Product not found", code="PRODUCT_NOT_FOUND")
    if category_id and not await catalog.category_exists(category_id):
        raise NotFoundError("Category not found", code="CATEGORY_NOT_FOUND")


async def validate_seller_ids(identity: IdentityDirectory, seller_ids: Iterable[str]) -> None:
    """Batch check; the whole call is rejected on the first unknown id."""
    unknown = await identity.find_unknown_sellers(seller_ids)
    if unknown:
        raise ValidationFailedError(
            f"Seller not found: {unknown[0]}",
            code="SELLER_NOT_FOUND",
            details={"unknown_seller_ids": unknown},
        )


def _check_budget(budget_min: Optional[float], budget_max: Optional[float]) -> None:
    if budget_min is not None and budget_max is not None and budget_min > budget_max:
        raise ValidationFailedError("budget_min cannot exceed budget_max")


# ---------- commands ----------


async def create_rfq(
    session: AsyncSession,
    identity: IdentityDirectory,
    catalog: Catalog,
    current_user: dict,
    body: RfqCreate,
) -> Rfq:
    authorize(current_user, Operation.CREATE_RFQ)
    if body.status not in INITIAL_STATUSES:
        raise ValidationFailedError(
            f"An RFQ cannot be created as '{body.status}'",
            details={"allowed": list(INITIAL_STATUSES)},
        )

    await _validate_references(catalog, body.product_id, body.category_id)
    if body.target_seller_ids:
        await validate_seller_ids(identity, body.target_seller_ids)

    buyer_id: Optional[str] = None
    admin_id: Optional[str] = None
    if current_user["role"] == "admin":
        admin_id = current_user["user_id"]
        if body.buyer_id:
            if await identity.get_buyer(body.buyer_id) is None:
                raise NotFoundError("Buyer not found", code="BUYER_NOT_FOUND")
            buyer_id = body.buyer_id
    else:
        buyer_id = current_user["user_id"]

    rfq = Rfq(
        title=body.title,
        description=body.description,
        product_id=body.product_id,
        category_id=body.category_id,
        quantity=body.quantity,
        unit=body.unit,
        budget_min=body.budget_min,
        budget_max=body.budget_max,
        delivery_location=body.delivery_location,
        buyer_id=buyer_id,
        admin_id=admin_id,
        status=body.status,
        distribution_type=body.distribution_type,
        expiry_date=body.expiry_date,
        specifications=dict(body.specifications),
        attachments=[a.model_dump() for a in body.attachments],
    )
    session.add(rfq)
    await session.flush()
    if body.target_seller_ids:
        await rfq_store.add_target_sellers(session, rfq.id, body.target_seller_ids)

    logger.info(
        "rfq_created",
        rfq_id=rfq.id,
        by=current_user["user_id"],
        role=current_user["role"],
        status=rfq.status,
        distribution_type=rfq.distribution_type,
    )
    return rfq


async def create_public_rfq(
    session: AsyncSession, catalog: Catalog, body: RfqPublicCreate
) -> Rfq:
    """Unauthenticated submission; lands as an ownerless draft for admins to review."""
    await _validate_references(catalog, body.product_id, body.category_id)

    rfq = Rfq(
        title=body.title,
        description=body.description,
        product_id=body.product_id,
        category_id=body.category_id,
        quantity=body.quantity,
        unit=body.unit,
        budget_min=body.budget_min,
        budget_max=body.budget_max,
        delivery_location=body.delivery_location,
        contact_name=body.contact_name,
        contact_email=str(body.contact_email),
        contact_phone=body.contact_phone,
        status="draft",
        distribution_type="all",
        expiry_date=body.expiry_date,
        specifications=dict(body.specifications),
        attachments=[],
    )
    session.add(rfq)
    await session.flush()
    logger.info("public_rfq_created", rfq_id=rfq.id, contact_email=rfq.contact_email)
    return rfq


async def update_rfq(
    session: AsyncSession,
    identity: IdentityDirectory,
    catalog: Catalog,
    current_user: dict,
    rfq_id: str,
    body: RfqUpdate,
) -> Rfq:
    authorize(current_user, Operation.UPDATE_RFQ)
    rfq = await rfq_store.get_rfq(session, rfq_id, for_update=True)
    if not rfq:
        raise NotFoundError("RFQ not found", code="RFQ_NOT_FOUND")
    authorize(current_user, Operation.UPDATE_RFQ, owner_id=rfq.buyer_id)

    patch: dict[str, Any] = body.model_dump(exclude_unset=True)
    cleared = sorted(k for k, v in patch.items() if v is None and k in _REQUIRED_FIELDS)
    if cleared:
        raise ValidationFailedError(
            f"Field '{cleared[0]}' cannot be null", details={"fields": cleared}
        )

    if "status" in patch:
        check_status_transition(rfq.status, patch["status"])
    _check_budget(
        patch.get("budget_min", rfq.budget_min), patch.get("budget_max", rfq.budget_max)
    )
    await _validate_references(catalog, patch.get("product_id"), patch.get("category_id"))
    target_ids = patch.pop("target_seller_ids", None)
    if target_ids:
        await validate_seller_ids(identity, target_ids)

    previous_status = rfq.status
    for field, val in patch.items():
        setattr(rfq, field, val)
    rfq.updated_at = datetime.utcnow()
    await session.flush()
    if target_ids is not None:
        await rfq_store.replace_target_sellers(session, rfq.id, target_ids)

    logger.info(
        "rfq_updated",
        rfq_id=rfq.id,
        by=current_user["user_id"],
        fields=sorted(patch) + (["target_seller_ids"] if target_ids is not None else []),
    )
    if rfq.status != previous_status:
        logger.info("rfq_status_changed", rfq_id=rfq.id, old=previous_status, new=rfq.status)
    return rfq


async def delete_rfq(session: AsyncSession, current_user: dict, rfq_id: str) -> None:
    authorize(current_user, Operation.DELETE_RFQ)
    rfq = await rfq_store.get_rfq(session, rfq_id, for_update=True)
    if not rfq:
        raise NotFoundError("RFQ not found", code="RFQ_NOT_FOUND")
    authorize(current_user, Operation.DELETE_RFQ, owner_id=rfq.buyer_id)

    await rfq_store.delete_rfq(session, rfq_id)
    logger.info("rfq_deleted", rfq_id=rfq_id, by=current_user["user_id"])


# ---------- queries ----------


async def get_rfq(session: AsyncSession, rfq_id: str) -> Rfq:
    rfq = await rfq_store.get_rfq(session, rfq_id)
    if not rfq:
        raise NotFoundError("RFQ not found", code="RFQ_NOT_FOUND")
    return rfq


async def list_rfqs(
    session: AsyncSession,
    status: Optional[str] = None,
    buyer_id: Optional[str] = None,
    product_id: Optional[str] = None,
    category_id: Optional[str] = None,
) -> list[Rfq]:
    q = select(Rfq)
    if status:
        q = q.where(Rfq.status == status)
    if buyer_id:
        q = q.where(Rfq.buyer_id == buyer_id)
    if product_id:
        q = q.where(Rfq.product_id == product_id)
    if category_id:
        q = q.where(Rfq.category_id == category_id)
    result = await session.execute(q.order_by(Rfq.created_at.desc()))
    return list(result.scalars().all())


async def list_buyer_rfqs(
    session: AsyncSession, current_user: dict, status: Optional[str] = None
) -> list[Rfq]:
    authorize(current_user, Operation.LIST_OWN_RFQS)
    return await list_rfqs(session, status=status, buyer_id=current_user["user_id"])


# ---------- response building ----------


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _seller_ref(seller) -> SellerRef:
    return SellerRef(
        id=seller.id, name=seller.name, company_name=seller.company_name, email=seller.email
    )


def quote_to_response(r: RfqQuote, seller=None) -> QuoteResponse:
    return QuoteResponse(
        id=r.id,
        rfq_id=r.rfq_id,
        seller_id=r.seller_id,
        seller=_seller_ref(seller) if seller is not None else None,
        quote_price=r.quote_price,
        quote_quantity=r.quote_quantity,
        delivery_time_days=r.delivery_time_days,
        message=r.message,
        status=r.status,
        submitted_at=_iso(r.submitted_at) or "",
    )


def _to_response(
    rfq: Rfq,
    target_ids: list[str],
    responses: list[RfqQuote],
    sellers: Optional[dict] = None,
) -> RfqResponse:
    sellers = sellers or {}
    return RfqResponse(
        id=rfq.id,
        title=rfq.title,
        description=rfq.description,
        product_id=rfq.product_id,
        category_id=rfq.category_id,
        quantity=rfq.quantity,
        unit=rfq.unit,
        budget_min=rfq.budget_min,
        budget_max=rfq.budget_max,
        delivery_location=rfq.delivery_location,
        buyer_id=rfq.buyer_id,
        admin_id=rfq.admin_id,
        contact_name=rfq.contact_name,
        contact_email=rfq.contact_email,
        contact_phone=rfq.contact_phone,
        status=rfq.status,
        distribution_type=rfq.distribution_type,
        target_seller_ids=target_ids,
        responses=[quote_to_response(r, sellers.get(r.seller_id)) for r in responses],
        expiry_date=_iso(rfq.expiry_date),
        specifications=rfq.specifications or {},
        attachments=rfq.attachments or [],
        created_at=_iso(rfq.created_at) or "",
        updated_at=_iso(rfq.updated_at) or "",
    )


async def build_responses(session: AsyncSession, rfqs: list[Rfq]) -> list[RfqResponse]:
    """Batch-load targets and responses for all RFQs in two queries."""
    ids = [r.id for r in rfqs]
    targets = await rfq_store.get_target_seller_ids(session, ids)
    responses = await rfq_store.get_responses(session, ids)
    return [_to_response(r, targets.get(r.id, []), responses.get(r.id, [])) for r in rfqs]


async def build_response(session: AsyncSession, rfq: Rfq) -> RfqResponse:
    return (await build_responses(session, [rfq]))[0]


async def build_populated_response(
    session: AsyncSession,
    identity: IdentityDirectory,
    catalog: Catalog,
    rfq: Rfq,
) -> RfqResponse:
    """Full view with product, category, buyer, admin and sellers resolved."""
    target_ids = (await rfq_store.get_target_seller_ids(session, [rfq.id])).get(rfq.id, [])
    responses = (await rfq_store.get_responses(session, [rfq.id])).get(rfq.id, [])
    sellers = await identity.get_sellers(target_ids + [r.seller_id for r in responses])

    out = _to_response(rfq, target_ids, responses, sellers)
    if rfq.product_id:
        product = await catalog.get_product(rfq.product_id)
        if product:
            out.product = ProductRef(
                id=product.id,
                name=product.name,
                sku=product.sku,
                description=product.description,
                price=product.price,
            )
    if rfq.category_id:
        category = await catalog.get_category(rfq.category_id)
        if category:
            out.category = CategoryRef(
                id=category.id, name=category.name, description=category.description
            )
    if rfq.buyer_id:
        buyer = await identity.get_buyer(rfq.buyer_id)
        if buyer:
            out.buyer = PartyRef(id=buyer.id, name=buyer.name, email=buyer.email)
    if rfq.admin_id:
        admin = await identity.get_admin(rfq.admin_id)
        if admin:
            out.admin = PartyRef(id=admin.id, name=admin.name, email=admin.email)
    out.target_sellers = [_seller_ref(sellers[sid]) for sid in target_ids if sid in sellers]
    return out
