"""
Service-level tests for rfq_api/services/rfq_service.py against in-memory SQLite.

Covers create/update/delete ownership, reference validation, the status
machine and the "validate everything before writing" rule.
"""

import pytest

from conftest import (
    ADMIN_ID,
    BUYER_ID,
    CAT_TOOLS,
    OTHER_BUYER_ID,
    PRODUCT_DRILL,
    SELLER_1,
    SELLER_2,
    SELLER_3,
    principal,
)
from rfq_api.errors import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from rfq_api.schemas.rfq import QuoteSubmit, RfqCreate, RfqPublicCreate, RfqUpdate
from rfq_api.services import quote_service, rfq_service, rfq_store
from rfq_api.services.directory import SQLCatalog, SQLIdentityDirectory

BUYER = principal(BUYER_ID, "buyer")
OTHER_BUYER = principal(OTHER_BUYER_ID, "buyer")
ADMIN = principal(ADMIN_ID, "admin")


def _body(**overrides) -> RfqCreate:
    fields = {"title": "Cordless drills", "description": "Need 18V drills", "quantity": 50}
    fields.update(overrides)
    return RfqCreate(**fields)


async def _create(db, user=BUYER, **overrides):
    return await rfq_service.create_rfq(
        db, SQLIdentityDirectory(db), SQLCatalog(db), user, _body(**overrides)
    )


async def _update(db, user, rfq_id, **patch):
    return await rfq_service.update_rfq(
        db, SQLIdentityDirectory(db), SQLCatalog(db), user, rfq_id, RfqUpdate(**patch)
    )


async def _targets(db, rfq_id) -> set:
    return set((await rfq_store.get_target_seller_ids(db, [rfq_id])).get(rfq_id, []))


# ---------------------------------------------------------------------------
# create_rfq
# ---------------------------------------------------------------------------


async def test_buyer_create_sets_buyer_reference(db):
    rfq = await _create(db)
    assert rfq.buyer_id == BUYER_ID
    assert rfq.admin_id is None
    assert rfq.status == "draft"
    assert rfq.distribution_type == "all"
    assert rfq.unit == "pieces"


async def test_admin_create_sets_admin_and_optional_buyer(db):
    general = await _create(db, user=ADMIN)
    assert general.admin_id == ADMIN_ID
    assert general.buyer_id is None

    on_behalf = await _create(db, user=ADMIN, buyer_id=BUYER_ID, status="published")
    assert on_behalf.admin_id == ADMIN_ID
    assert on_behalf.buyer_id == BUYER_ID
    assert on_behalf.status == "published"


async def test_buyer_cannot_create_on_behalf_of_another_buyer(db):
    rfq = await _create(db, buyer_id=OTHER_BUYER_ID)
    assert rfq.buyer_id == BUYER_ID


async def test_admin_create_for_unknown_buyer_is_not_found(db):
    with pytest.raises(NotFoundError):
        await _create(db, user=ADMIN, buyer_id="ghost-buyer")


async def test_seller_cannot_create(db):
    with pytest.raises(ForbiddenError):
        await _create(db, user=principal(SELLER_1, "seller"))


async def test_create_with_closed_status_is_rejected(db):
    with pytest.raises(ValidationFailedError):
        await _create(db, status="closed")
    assert await rfq_service.list_rfqs(db) == []


async def test_unknown_product_or_category_is_not_found(db):
    with pytest.raises(NotFoundError) as exc:
        await _create(db, product_id="no-such-product")
    assert exc.value.code == "PRODUCT_NOT_FOUND"

    with pytest.raises(NotFoundError) as exc:
        await _create(db, category_id="no-such-category")
    assert exc.value.code == "CATEGORY_NOT_FOUND"
    assert await rfq_service.list_rfqs(db) == []


async def test_specific_create_with_unknown_seller_writes_nothing(db):
    with pytest.raises(ValidationFailedError) as exc:
        await _create(
            db,
            distribution_type="specific",
            target_seller_ids=[SELLER_1, "ghost-seller", "ghost-2"],
        )
    assert "ghost-seller" in exc.value.message
    assert exc.value.details == {"unknown_seller_ids": ["ghost-seller", "ghost-2"]}
    assert await rfq_service.list_rfqs(db) == []


async def test_specific_create_stores_target_set(db):
    rfq = await _create(
        db,
        distribution_type="specific",
        target_seller_ids=[SELLER_1, SELLER_2, SELLER_1],
    )
    assert await _targets(db, rfq.id) == {SELLER_1, SELLER_2}


async def test_specifications_keep_insertion_order(db):
    specs = {"voltage": "18V", "battery": "2x 5Ah", "chuck": "13mm"}
    rfq = await _create(db, specifications=specs)
    out = await rfq_service.build_response(db, rfq)
    assert list(out.specifications) == ["voltage", "battery", "chuck"]


# ---------------------------------------------------------------------------
# create_public_rfq
# ---------------------------------------------------------------------------


async def test_public_rfq_is_ownerless_draft(db):
    body = RfqPublicCreate(
        title="Paint",
        description="Exterior paint",
        quantity=10,
        contact_name="Walk-in",
        contact_email="walkin@example.com",
        category_id=CAT_TOOLS,
    )
    rfq = await rfq_service.create_public_rfq(db, SQLCatalog(db), body)
    assert rfq.status == "draft"
    assert rfq.distribution_type == "all"
    assert rfq.buyer_id is None and rfq.admin_id is None
    assert rfq.contact_email == "walkin@example.com"

    # No buyer owns it, so only an admin can edit it.
    with pytest.raises(ForbiddenError):
        await _update(db, BUYER, rfq.id, title="Mine now")
    updated = await _update(db, ADMIN, rfq.id, status="published")
    assert updated.status == "published"


# ---------------------------------------------------------------------------
# update_rfq
# ---------------------------------------------------------------------------


async def test_owner_updates_fields(db):
    rfq = await _create(db)
    updated = await _update(db, BUYER, rfq.id, title="Impact drivers", quantity=75)
    assert updated.title == "Impact drivers"
    assert updated.quantity == 75
    assert updated.description == "Need 18V drills"


async def test_non_owner_buyer_cannot_update_or_delete(db):
    rfq = await _create(db)
    with pytest.raises(ForbiddenError):
        await _update(db, OTHER_BUYER, rfq.id, title="Hijack")
    with pytest.raises(ForbiddenError):
        await rfq_service.delete_rfq(db, OTHER_BUYER, rfq.id)
    assert (await rfq_service.get_rfq(db, rfq.id)).title == "Cordless drills"


async def test_admin_updates_any_rfq(db):
    rfq = await _create(db)
    updated = await _update(db, ADMIN, rfq.id, unit="boxes")
    assert updated.unit == "boxes"


async def test_update_unknown_rfq_is_not_found(db):
    with pytest.raises(NotFoundError):
        await _update(db, ADMIN, "missing-rfq", title="x")


async def test_status_walk_draft_published_closed(db):
    rfq = await _create(db)
    assert (await _update(db, BUYER, rfq.id, status="published")).status == "published"
    assert (await _update(db, BUYER, rfq.id, status="published")).status == "published"
    assert (await _update(db, BUYER, rfq.id, status="closed")).status == "closed"


async def test_illegal_transition_changes_nothing(db):
    rfq = await _create(db, status="published")
    with pytest.raises(ConflictError) as exc:
        await _update(db, BUYER, rfq.id, status="draft", title="Renamed")
    assert exc.value.code == "INVALID_STATUS_TRANSITION"
    fresh = await rfq_service.get_rfq(db, rfq.id)
    assert fresh.status == "published"
    assert fresh.title == "Cordless drills"


async def test_update_replaces_target_set(db):
    rfq = await _create(db, distribution_type="specific", target_seller_ids=[SELLER_1])
    await _update(db, ADMIN, rfq.id, target_seller_ids=[SELLER_2, SELLER_3])
    assert await _targets(db, rfq.id) == {SELLER_2, SELLER_3}


async def test_update_with_unknown_seller_keeps_old_targets(db):
    rfq = await _create(db, distribution_type="specific", target_seller_ids=[SELLER_1])
    with pytest.raises(ValidationFailedError):
        await _update(db, ADMIN, rfq.id, target_seller_ids=[SELLER_2, "ghost"], title="New")
    assert await _targets(db, rfq.id) == {SELLER_1}
    assert (await rfq_service.get_rfq(db, rfq.id)).title == "Cordless drills"


async def test_update_cannot_null_required_field(db):
    rfq = await _create(db)
    with pytest.raises(ValidationFailedError):
        await _update(db, BUYER, rfq.id, title=None)


async def test_update_checks_budget_against_stored_value(db):
    rfq = await _create(db, budget_min=100, budget_max=500)
    with pytest.raises(ValidationFailedError):
        await _update(db, BUYER, rfq.id, budget_min=900)
    updated = await _update(db, BUYER, rfq.id, budget_max=None, budget_min=900)
    assert updated.budget_min == 900
    assert updated.budget_max is None


# ---------------------------------------------------------------------------
# delete_rfq
# ---------------------------------------------------------------------------


async def test_delete_removes_targets_and_responses(db):
    rfq = await _create(db, status="published", distribution_type="specific", target_seller_ids=[SELLER_1])
    await quote_service.submit_quote(
        db, SQLCatalog(db), principal(SELLER_1, "seller"), rfq.id, QuoteSubmit(quote_price=10)
    )

    await rfq_service.delete_rfq(db, BUYER, rfq.id)

    with pytest.raises(NotFoundError):
        await rfq_service.get_rfq(db, rfq.id)
    assert await _targets(db, rfq.id) == set()
    assert (await rfq_store.get_responses(db, [rfq.id])).get(rfq.id, []) == []


async def test_delete_unknown_rfq_is_not_found(db):
    with pytest.raises(NotFoundError):
        await rfq_service.delete_rfq(db, ADMIN, "missing-rfq")


# ---------------------------------------------------------------------------
# queries
# ---------------------------------------------------------------------------


async def test_list_rfqs_filters_and_orders_newest_first(db):
    first = await _create(db, product_id=PRODUCT_DRILL)
    second = await _create(db, user=ADMIN, status="published", category_id=CAT_TOOLS)
    third = await _create(db, user=OTHER_BUYER)

    assert [r.id for r in await rfq_service.list_rfqs(db)] == [third.id, second.id, first.id]
    assert [r.id for r in await rfq_service.list_rfqs(db, status="published")] == [second.id]
    assert [r.id for r in await rfq_service.list_rfqs(db, buyer_id=BUYER_ID)] == [first.id]
    assert [r.id for r in await rfq_service.list_rfqs(db, product_id=PRODUCT_DRILL)] == [first.id]
    assert [r.id for r in await rfq_service.list_rfqs(db, category_id=CAT_TOOLS)] == [second.id]


async def test_list_buyer_rfqs_returns_only_own(db):
    mine = await _create(db)
    await _create(db, user=OTHER_BUYER)
    rfqs = await rfq_service.list_buyer_rfqs(db, BUYER)
    assert [r.id for r in rfqs] == [mine.id]


async def test_populated_response_resolves_references(db):
    rfq = await _create(
        db,
        user=ADMIN,
        buyer_id=BUYER_ID,
        product_id=PRODUCT_DRILL,
        category_id=CAT_TOOLS,
        status="published",
        distribution_type="specific",
        target_seller_ids=[SELLER_1],
    )
    await quote_service.submit_quote(
        db, SQLCatalog(db), principal(SELLER_1, "seller"), rfq.id, QuoteSubmit(quote_price=42)
    )

    out = await rfq_service.build_populated_response(
        db, SQLIdentityDirectory(db), SQLCatalog(db), rfq
    )
    assert out.product.name == "Drill"
    assert out.category.name == "Tools"
    assert out.buyer.name == "Bo Buyer"
    assert out.admin.name == "Ada Admin"
    assert [s.id for s in out.target_sellers] == [SELLER_1]
    assert out.responses[0].seller.company_name == "Tools Co"
