# rfq_api/services/rfq_store.py
"""
Storage primitives for the RFQ aggregate.

All functions use the caller's session (no commit); get_db() commits.
Collection writes are single ON CONFLICT statements so concurrent requests
cannot interleave a read-modify-write of the seller list or responses.
"""

import uuid
from collections import defaultdict
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rfq_api.database import dialect_insert
from rfq_api.models.rfq import Rfq, RfqQuote, RfqTargetSeller

logger = structlog.get_logger()


async def get_rfq(
    session: AsyncSession, rfq_id: str, for_update: bool = False
) -> Optional[Rfq]:
    q = select(Rfq).where(Rfq.id == rfq_id)
    if for_update:
        q = q.with_for_update()
    result = await session.execute(q.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def get_target_seller_ids(
    session: AsyncSession, rfq_ids: Iterable[str]
) -> dict[str, list[str]]:
    """Batch-load allow-lists, ordered by when each seller was added."""
    ids = list(rfq_ids)
    targets: dict[str, list[str]] = defaultdict(list)
    if not ids:
        return targets
    result = await session.execute(
        select(RfqTargetSeller.rfq_id, RfqTargetSeller.seller_id)
        .where(RfqTargetSeller.rfq_id.in_(ids))
        .order_by(RfqTargetSeller.added_at, RfqTargetSeller.seller_id)
    )
    for rfq_id, seller_id in result.all():
        targets[rfq_id].append(seller_id)
    return targets


async def get_responses(
    session: AsyncSession, rfq_ids: Iterable[str]
) -> dict[str, list[RfqQuote]]:
    ids = list(rfq_ids)
    responses: dict[str, list[RfqQuote]] = defaultdict(list)
    if not ids:
        return responses
    result = await session.execute(
        select(RfqQuote)
        .where(RfqQuote.rfq_id.in_(ids))
        .order_by(RfqQuote.created_at, RfqQuote.id)
        .execution_options(populate_existing=True)
    )
    for r in result.scalars().all():
        responses[r.rfq_id].append(r)
    return responses


async def add_target_sellers(
    session: AsyncSession, rfq_id: str, seller_ids: Iterable[str]
) -> None:
    """Set union: existing entries are kept, duplicates are dropped."""
    rows = [
        {"rfq_id": rfq_id, "seller_id": sid, "added_at": datetime.utcnow()}
        for sid in dict.fromkeys(seller_ids)
    ]
    if not rows:
        return
    stmt = dialect_insert(session, RfqTargetSeller).values(rows)
    stmt = stmt.on_conflict_do_nothing(index_elements=["rfq_id", "seller_id"])
    await session.execute(stmt)


async def replace_target_sellers(
    session: AsyncSession, rfq_id: str, seller_ids: Iterable[str]
) -> None:
    await session.execute(
        delete(RfqTargetSeller).where(RfqTargetSeller.rfq_id == rfq_id)
    )
    await add_target_sellers(session, rfq_id, seller_ids)


async def upsert_response(
    session: AsyncSession, rfq_id: str, seller_id: str, values: dict
) -> RfqQuote:
    """
    Insert the seller's response or overwrite every column of the existing
    one in a single statement keyed by (rfq_id, seller_id).
    """
    now = datetime.utcnow()
    row = {
        "id": str(uuid.uuid4()),
        "rfq_id": rfq_id,
        "seller_id": seller_id,
        "created_at": now,
        **values,
    }
    stmt = dialect_insert(session, RfqQuote).values(row)
    replaced = {k: stmt.excluded[k] for k in values}
    stmt = stmt.on_conflict_do_update(
        index_elements=["rfq_id", "seller_id"], set_=replaced
    )
    await session.execute(stmt)
    await session.execute(
        update(Rfq).where(Rfq.id == rfq_id).values(updated_at=now)
    )

    result = await session.execute(
        select(RfqQuote)
        .where(RfqQuote.rfq_id == rfq_id, RfqQuote.seller_id == seller_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def delete_rfq(session: AsyncSession, rfq_id: str) -> None:
    """Hard delete of the aggregate, children first."""
    await session.execute(delete(RfqQuote).where(RfqQuote.rfq_id == rfq_id))
    await session.execute(
        delete(RfqTargetSeller).where(RfqTargetSeller.rfq_id == rfq_id)
    )
    await session.execute(delete(Rfq).where(Rfq.id == rfq_id))
