"""Tests for list_visible_rfqs in rfq_api/services/eligibility.py."""

from conftest import ADMIN_ID, CAT_PAINT, CAT_TOOLS, SELLER_1, SELLER_2, SELLER_3, principal
from rfq_api.models.directory import Product, product_categories
from rfq_api.schemas.rfq import QuoteSubmit, RfqCreate
from rfq_api.services import rfq_service
from rfq_api.services.directory import SQLCatalog, SQLIdentityDirectory
from rfq_api.services.eligibility import check_seller_eligibility, list_visible_rfqs
from rfq_api.services.quote_service import submit_quote

ADMIN = principal(ADMIN_ID, "admin")


async def _rfq(db, title, **overrides):
    fields = {"title": title, "description": title, "quantity": 1, "status": "published"}
    fields.update(overrides)
    return await rfq_service.create_rfq(
        db, SQLIdentityDirectory(db), SQLCatalog(db), ADMIN, RfqCreate(**fields)
    )


async def _feed(db, seller_id, status=None):
    return [r.id for r in await list_visible_rfqs(db, SQLCatalog(db), seller_id, status=status)]


async def test_feed_applies_each_distribution_policy(db):
    open_all = await _rfq(db, "all")
    tools = await _rfq(db, "tools", distribution_type="category", category_id=CAT_TOOLS)
    direct = await _rfq(db, "direct", distribution_type="specific", target_seller_ids=[SELLER_2])

    assert await _feed(db, SELLER_1) == [tools.id, open_all.id]
    assert await _feed(db, SELLER_2) == [direct.id, open_all.id]
    assert await _feed(db, SELLER_3) == [open_all.id]


async def test_feed_hides_unpublished_rfqs(db):
    await _rfq(db, "draft", status="draft")
    published = await _rfq(db, "published")
    assert await _feed(db, SELLER_1) == [published.id]


async def test_status_filter_other_than_published_is_empty(db):
    await _rfq(db, "published")
    await _rfq(db, "draft", status="draft")
    assert await _feed(db, SELLER_1, status="draft") == []
    assert await _feed(db, SELLER_1, status="closed") == []
    assert len(await _feed(db, SELLER_1, status="published")) == 1


async def test_category_membership_is_read_at_call_time(db):
    paint = await _rfq(db, "paint", distribution_type="category", category_id=CAT_PAINT)
    assert await _feed(db, SELLER_3) == []

    # seller-3 starts selling paint; the RFQ itself is untouched.
    db.add(Product(id="prod-roller", name="Roller", seller_id=SELLER_3, status="approved"))
    await db.flush()
    await db.execute(
        product_categories.insert().values(product_id="prod-roller", category_id=CAT_PAINT)
    )

    assert await _feed(db, SELLER_3) == [paint.id]
    quote = await submit_quote(
        db, SQLCatalog(db), principal(SELLER_3, "seller"), paint.id, QuoteSubmit(quote_price=3)
    )
    assert quote.seller_id == SELLER_3


async def test_feed_matches_per_rfq_eligibility(db):
    rfqs = [
        await _rfq(db, "all"),
        await _rfq(db, "tools", distribution_type="category", category_id=CAT_TOOLS),
        await _rfq(db, "paint", distribution_type="category", category_id=CAT_PAINT),
        await _rfq(db, "pair", distribution_type="specific", target_seller_ids=[SELLER_1, SELLER_2]),
        await _rfq(db, "solo", distribution_type="specific", target_seller_ids=[SELLER_3]),
        await _rfq(db, "hidden", distribution_type="specific", target_seller_ids=[SELLER_3],
                   status="draft"),
    ]
    catalog = SQLCatalog(db)
    for seller_id in (SELLER_1, SELLER_2, SELLER_3):
        expected = {
            r.id
            for r in rfqs
            if r.status == "published"
            and await check_seller_eligibility(db, catalog, r, seller_id)
        }
        assert set(await _feed(db, seller_id)) == expected, seller_id


async def test_feed_skips_rfqs_targeted_at_other_sellers(db):
    for i in range(25):
        await _rfq(db, f"direct-{i}", distribution_type="specific", target_seller_ids=[SELLER_2])
    mine = await _rfq(db, "mine", distribution_type="specific", target_seller_ids=[SELLER_3])

    assert await _feed(db, SELLER_3) == [mine.id]
    assert len(await _feed(db, SELLER_2)) == 25
