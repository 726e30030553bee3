# rfq_api/services/quote_service.py
"""
Quote ledger: at most one response per (RFQ, seller).

A resubmission overwrites the seller's previous quote in place, so the
response keeps its id and its position in the RFQ's response list.
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rfq_api.errors import ConflictError, NotFoundError
from rfq_api.middleware.authorization import Operation, authorize
from rfq_api.models.rfq import RfqQuote
from rfq_api.schemas.rfq import QuoteSubmit
from rfq_api.services import rfq_store
from rfq_api.services.directory import Catalog
from rfq_api.services.eligibility import check_seller_eligibility

logger = structlog.get_logger()


async def submit_quote(
    session: AsyncSession,
    catalog: Catalog,
    current_user: dict,
    rfq_id: str,
    body: QuoteSubmit,
) -> RfqQuote:
    authorize(current_user, Operation.SUBMIT_QUOTE)
    seller_id = current_user["user_id"]

    rfq = await rfq_store.get_rfq(session, rfq_id)
    if not rfq:
        raise NotFoundError("RFQ not found", code="RFQ_NOT_FOUND")

    # Eligibility is re-evaluated here, never trusted from the seller's feed.
    eligible = await check_seller_eligibility(session, catalog, rfq, seller_id)
    authorize(current_user, Operation.SUBMIT_QUOTE, eligible=eligible)

    if rfq.status != "published":
        raise ConflictError(
            f"RFQ is not open for quotes (status '{rfq.status}')",
            code="RFQ_NOT_OPEN",
        )

    values = {
        "quote_price": body.quote_price,
        "quote_quantity": body.quote_quantity if body.quote_quantity is not None else rfq.quantity,
        "delivery_time_days": body.delivery_time_days,
        "message": body.message,
        "status": "submitted",
        "submitted_at": datetime.utcnow(),
    }
    quote = await rfq_store.upsert_response(session, rfq.id, seller_id, values)

    logger.info(
        "quote_submitted",
        rfq_id=rfq.id,
        seller_id=seller_id,
        response_id=quote.id,
        quote_price=quote.quote_price,
    )
    return quote
