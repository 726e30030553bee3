# rfq_api/services/distribution_service.py
"""Admin-driven distribution: grow an RFQ's seller allow-list."""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rfq_api.errors import NotFoundError, ValidationFailedError
from rfq_api.middleware.authorization import Operation, authorize
from rfq_api.models.rfq import Rfq
from rfq_api.services import rfq_store
from rfq_api.services.directory import IdentityDirectory
from rfq_api.services.rfq_service import validate_seller_ids

logger = structlog.get_logger()


async def distribute_rfq(
    session: AsyncSession,
    identity: IdentityDirectory,
    current_user: dict,
    rfq_id: str,
    seller_ids: list[str],
) -> Rfq:
    """
    Union seller_ids into the RFQ's target sellers.

    Idempotent: re-distributing to a seller already on the list is a no-op.
    Every id is validated before anything is written; one unknown seller
    rejects the whole call.
    """
    authorize(current_user, Operation.DISTRIBUTE_RFQ)
    if not seller_ids:
        raise ValidationFailedError("sellerIds must not be empty")

    rfq = await rfq_store.get_rfq(session, rfq_id, for_update=True)
    if not rfq:
        raise NotFoundError("RFQ not found", code="RFQ_NOT_FOUND")

    await validate_seller_ids(identity, seller_ids)

    if rfq.distribution_type != "specific":
        # Stored anyway; it takes effect if the RFQ later switches to 'specific'.
        logger.warning(
            "distribute_without_effect",
            rfq_id=rfq.id,
            distribution_type=rfq.distribution_type,
        )

    await rfq_store.add_target_sellers(session, rfq.id, seller_ids)
    rfq.updated_at = datetime.utcnow()
    await session.flush()

    logger.info(
        "rfq_distributed",
        rfq_id=rfq.id,
        by=current_user["user_id"],
        seller_count=len(set(seller_ids)),
    )
    return rfq
