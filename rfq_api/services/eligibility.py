# rfq_api/services/eligibility.py
"""
Seller eligibility: which sellers may see and quote on which RFQs.

is_eligible() is pure; the caller supplies the seller's current category
membership so 'category' RFQs follow the catalog without being rewritten.
list_visible_rfqs() applies the same rules as a SQL predicate (audience_clause).
"""

from dataclasses import dataclass, field
from typing import AbstractSet, Iterable, Optional

from sqlalchemy import and_, exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rfq_api.models.rfq import Rfq, RfqTargetSeller
from rfq_api.services import rfq_store
from rfq_api.services.directory import Catalog

logger = structlog.get_logger()


@dataclass(frozen=True)
class RfqAudience:
    """The parts of an RFQ that decide who may see it."""

    distribution_type: Optional[str]
    category_id: Optional[str] = None
    target_seller_ids: frozenset = field(default_factory=frozenset)

    @classmethod
    def of(cls, rfq: Rfq, target_seller_ids: Iterable[str]) -> "RfqAudience":
        return cls(
            distribution_type=rfq.distribution_type,
            category_id=rfq.category_id,
            target_seller_ids=frozenset(target_seller_ids),
        )


def is_eligible(
    rfq: RfqAudience, seller_id: str, seller_category_ids: AbstractSet[str]
) -> bool:
    if rfq.distribution_type == "all":
        return True
    if rfq.distribution_type == "category":
        return bool(rfq.category_id) and rfq.category_id in seller_category_ids
    if rfq.distribution_type == "specific":
        return seller_id in rfq.target_seller_ids
    # Unknown policy: fail closed.
    return False


async def check_seller_eligibility(
    session: AsyncSession, catalog: Catalog, rfq: Rfq, seller_id: str
) -> bool:
    """Evaluate eligibility for one RFQ against live catalog and allow-list data."""
    targets = await rfq_store.get_target_seller_ids(session, [rfq.id])
    categories: set[str] = set()
    if rfq.distribution_type == "category":
        categories = await catalog.categories_of_seller(seller_id)
    return is_eligible(RfqAudience.of(rfq, targets.get(rfq.id, [])), seller_id, categories)


def audience_clause(seller_id: str, seller_category_ids: AbstractSet[str]):
    """SQL form of is_eligible() over the rfqs table."""
    return or_(
        Rfq.distribution_type == "all",
        and_(
            Rfq.distribution_type == "category",
            Rfq.category_id.in_(sorted(seller_category_ids)),
        ),
        and_(
            Rfq.distribution_type == "specific",
            exists().where(
                RfqTargetSeller.rfq_id == Rfq.id,
                RfqTargetSeller.seller_id == seller_id,
            ),
        ),
    )


async def list_visible_rfqs(
    session: AsyncSession,
    catalog: Catalog,
    seller_id: str,
    status: Optional[str] = None,
) -> list[Rfq]:
    """Published RFQs the seller is eligible for, newest first."""
    if status and status != "published":
        return []

    categories = await catalog.categories_of_seller(seller_id)
    result = await session.execute(
        select(Rfq)
        .where(Rfq.status == "published", audience_clause(seller_id, categories))
        .order_by(Rfq.created_at.desc())
    )
    visible = list(result.scalars().all())
    logger.debug(
        "seller_feed_resolved",
        seller_id=seller_id,
        categories=len(categories),
        visible=len(visible),
    )
    return visible
