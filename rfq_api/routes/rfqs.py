from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rfq_api.database import get_db
from rfq_api.middleware.authorization import (
    Operation,
    require_capability,
)
from rfq_api.schemas.rfq import (
    DistributeRequest,
    MessageResponse,
    QuoteResponse,
    QuoteSubmit,
    RfqCreate,
    RfqPublicCreate,
    RfqResponse,
    RfqStatus,
    RfqUpdate,
)
from rfq_api.services import distribution_service, quote_service, rfq_service
from rfq_api.services.directory import (
    Catalog,
    IdentityDirectory,
    SQLCatalog,
    SQLIdentityDirectory,
)
from rfq_api.services.eligibility import list_visible_rfqs
from rfq_api.services.events import (
    QUOTE_SUBMITTED,
    RFQ_CREATED,
    RFQ_DISTRIBUTED,
    EventPublisher,
    dispatch_event,
    get_event_publisher,
)

logger = structlog.get_logger()
router = APIRouter()


def get_identity_directory(db: AsyncSession = Depends(get_db)) -> IdentityDirectory:
    return SQLIdentityDirectory(db)


def get_catalog(db: AsyncSession = Depends(get_db)) -> Catalog:
    return SQLCatalog(db)


def _created_event(rfq_id: str, body: RfqResponse) -> dict:
    return {
        "rfq_id": rfq_id,
        "status": body.status,
        "distribution_type": body.distribution_type,
        "buyer_id": body.buyer_id,
        "category_id": body.category_id,
    }


# ---------- create ----------


@router.post("", response_model=RfqResponse, status_code=status.HTTP_201_CREATED)
async def create_rfq(
    body: RfqCreate,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(require_capability(Operation.CREATE_RFQ)),
    db: AsyncSession = Depends(get_db),
    identity: IdentityDirectory = Depends(get_identity_directory),
    catalog: Catalog = Depends(get_catalog),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    rfq = await rfq_service.create_rfq(db, identity, catalog, current_user, body)
    out = await rfq_service.build_response(db, rfq)
    background_tasks.add_task(
        dispatch_event, publisher, RFQ_CREATED, _created_event(rfq.id, out)
    )
    return out


@router.post("/public", response_model=RfqResponse, status_code=status.HTTP_201_CREATED)
async def create_public_rfq(
    body: RfqPublicCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    catalog: Catalog = Depends(get_catalog),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    rfq = await rfq_service.create_public_rfq(db, catalog, body)
    out = await rfq_service.build_response(db, rfq)
    background_tasks.add_task(
        dispatch_event, publisher, RFQ_CREATED, _created_event(rfq.id, out)
    )
    return out


# ---------- listings ----------
# Fixed paths are declared before /{rfq_id} so they are not captured by it.


@router.get("", response_model=list[RfqResponse])
async def list_rfqs(
    rfq_status: Optional[RfqStatus] = Query(None, alias="status"),
    buyer_id: Optional[str] = Query(None, alias="buyerId"),
    product_id: Optional[str] = Query(None, alias="productId"),
    category_id: Optional[str] = Query(None, alias="categoryId"),
    current_user: dict = Depends(require_capability(Operation.LIST_ALL_RFQS)),
    db: AsyncSession = Depends(get_db),
):
    rfqs = await rfq_service.list_rfqs(
        db,
        status=rfq_status,
        buyer_id=buyer_id,
        product_id=product_id,
        category_id=category_id,
    )
    return await rfq_service.build_responses(db, rfqs)


@router.get("/seller/my-rfqs", response_model=list[RfqResponse])
async def list_seller_rfqs(
    rfq_status: Optional[str] = Query(None, alias="status"),
    current_user: dict = Depends(require_capability(Operation.LIST_VISIBLE_RFQS)),
    db: AsyncSession = Depends(get_db),
    catalog: Catalog = Depends(get_catalog),
):
    rfqs = await list_visible_rfqs(db, catalog, current_user["user_id"], status=rfq_status)
    return await rfq_service.build_responses(db, rfqs)


@router.get("/buyer/my-rfqs", response_model=list[RfqResponse])
async def list_buyer_rfqs(
    rfq_status: Optional[RfqStatus] = Query(None, alias="status"),
    current_user: dict = Depends(require_capability(Operation.LIST_OWN_RFQS)),
    db: AsyncSession = Depends(get_db),
):
    rfqs = await rfq_service.list_buyer_rfqs(db, current_user, status=rfq_status)
    return await rfq_service.build_responses(db, rfqs)


# ---------- single RFQ ----------


@router.get("/{rfq_id}", response_model=RfqResponse)
async def get_rfq(
    rfq_id: str,
    current_user: dict = Depends(require_capability(Operation.VIEW_RFQ)),
    db: AsyncSession = Depends(get_db),
    identity: IdentityDirectory = Depends(get_identity_directory),
    catalog: Catalog = Depends(get_catalog),
):
    rfq = await rfq_service.get_rfq(db, rfq_id)
    return await rfq_service.build_populated_response(db, identity, catalog, rfq)


@router.put("/{rfq_id}", response_model=RfqResponse)
async def update_rfq(
    rfq_id: str,
    body: RfqUpdate,
    current_user: dict = Depends(require_capability(Operation.UPDATE_RFQ)),
    db: AsyncSession = Depends(get_db),
    identity: IdentityDirectory = Depends(get_identity_directory),
    catalog: Catalog = Depends(get_catalog),
):
    rfq = await rfq_service.update_rfq(db, identity, catalog, current_user, rfq_id, body)
    return await rfq_service.build_response(db, rfq)


@router.delete("/{rfq_id}", response_model=MessageResponse)
async def delete_rfq(
    rfq_id: str,
    current_user: dict = Depends(require_capability(Operation.DELETE_RFQ)),
    db: AsyncSession = Depends(get_db),
):
    await rfq_service.delete_rfq(db, current_user, rfq_id)
    return MessageResponse(message="RFQ deleted successfully")


# ---------- distribution & quoting ----------


@router.post("/{rfq_id}/distribute", response_model=RfqResponse)
async def distribute_rfq(
    rfq_id: str,
    body: DistributeRequest,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(require_capability(Operation.DISTRIBUTE_RFQ)),
    db: AsyncSession = Depends(get_db),
    identity: IdentityDirectory = Depends(get_identity_directory),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    rfq = await distribution_service.distribute_rfq(
        db, identity, current_user, rfq_id, body.seller_ids
    )
    out = await rfq_service.build_response(db, rfq)
    background_tasks.add_task(
        dispatch_event,
        publisher,
        RFQ_DISTRIBUTED,
        {
            "rfq_id": rfq.id,
            "seller_ids": list(dict.fromkeys(body.seller_ids)),
            "distribution_type": out.distribution_type,
        },
    )
    return out


@router.post("/{rfq_id}/quote", response_model=QuoteResponse)
async def submit_quote(
    rfq_id: str,
    body: QuoteSubmit,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(require_capability(Operation.SUBMIT_QUOTE)),
    db: AsyncSession = Depends(get_db),
    catalog: Catalog = Depends(get_catalog),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    quote = await quote_service.submit_quote(db, catalog, current_user, rfq_id, body)
    out = rfq_service.quote_to_response(quote)
    background_tasks.add_task(
        dispatch_event,
        publisher,
        QUOTE_SUBMITTED,
        {
            "rfq_id": out.rfq_id,
            "seller_id": out.seller_id,
            "response_id": out.id,
            "quote_price": out.quote_price,
        },
    )
    return out
