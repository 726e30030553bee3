"""
Local development seed: directory rows (admins, buyers, sellers, catalog)
plus access tokens for each persona.

In production these tables belong to the identity and catalog services.
Run from the project root: python -m scripts.seed
"""
import asyncio
import sys
import os

# Ensure the project root is on sys.path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select
from rfq_api.config import settings
from rfq_api.database import AsyncSessionLocal, Base, engine
from rfq_api.models.directory import Admin, Buyer, Category, Product, Seller, product_categories
from rfq_api.services.auth_service import create_access_token

# ---------- Fixed ids ----------

ADMIN_ID = "a0000000-0000-0000-0000-000000000001"
BUYER_ACME_ID = "b0000000-0000-0000-0000-000000000001"
BUYER_BETA_ID = "b0000000-0000-0000-0000-000000000002"

SELLER_ALPHA_ID = "c0000000-0000-0000-0000-000000000001"
SELLER_BRUSH_ID = "c0000000-0000-0000-0000-000000000002"
SELLER_CRATE_ID = "c0000000-0000-0000-0000-000000000003"
SELLER_PENDING_ID = "c0000000-0000-0000-0000-000000000004"

CAT_TOOLS_ID = "d0000000-0000-0000-0000-000000000001"
CAT_PAINT_ID = "d0000000-0000-0000-0000-000000000002"
CAT_PACKAGING_ID = "d0000000-0000-0000-0000-000000000003"


async def seed():
    if not settings.is_production:
        # Directory tables are normally owned elsewhere; create them locally.
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        result = await db.execute(select(Admin).where(Admin.id == ADMIN_ID))
        if result.scalar_one_or_none():
            print("Seed data already exists. Skipping.")
            return

        db.add_all([
            Admin(id=ADMIN_ID, name="Marketplace Admin", email="admin@marketplace.example.com"),
            Buyer(id=BUYER_ACME_ID, name="Acme Facilities", email="purchasing@acme.example.com"),
            Buyer(id=BUYER_BETA_ID, name="Beta Builders", email="buying@beta.example.com"),
            Seller(id=SELLER_ALPHA_ID, name="Grace Taylor", company_name="Alpha Tools",
                   email="sales@alphatools.example.com", status="approved"),
            Seller(id=SELLER_BRUSH_ID, name="Henry Ortiz", company_name="Brush & Co",
                   email="hello@brush.example.com", status="approved"),
            Seller(id=SELLER_CRATE_ID, name="Iris Chen", company_name="Crate Packaging",
                   email="iris@crate.example.com", status="approved"),
            Seller(id=SELLER_PENDING_ID, name="Jon Park", company_name="New Supplier Ltd",
                   email="jon@newsupplier.example.com", status="pending"),
            Category(id=CAT_TOOLS_ID, name="Power Tools"),
            Category(id=CAT_PAINT_ID, name="Paint & Coatings"),
            Category(id=CAT_PACKAGING_ID, name="Packaging"),
        ])
        await db.flush()

        products = [
            ("e0000000-0000-0000-0000-000000000001", "Cordless Drill 18V", SELLER_ALPHA_ID, CAT_TOOLS_ID),
            ("e0000000-0000-0000-0000-000000000002", "Angle Grinder", SELLER_ALPHA_ID, CAT_TOOLS_ID),
            ("e0000000-0000-0000-0000-000000000003", "Exterior Emulsion 10L", SELLER_BRUSH_ID, CAT_PAINT_ID),
            ("e0000000-0000-0000-0000-000000000004", "Corrugated Box 40x30", SELLER_CRATE_ID, CAT_PACKAGING_ID),
        ]
        for product_id, name, seller_id, _ in products:
            db.add(Product(id=product_id, name=name, seller_id=seller_id, status="approved"))
        await db.flush()
        await db.execute(
            product_categories.insert(),
            [{"product_id": pid, "category_id": cid} for pid, _, _, cid in products],
        )

        await db.commit()
        print("Seed data inserted successfully!")
        print("  Admins: 1, Buyers: 2, Sellers: 4 (1 pending), Categories: 3, Products: 4")
        print("Access tokens:")
        for label, user_id, role in [
            ("admin", ADMIN_ID, "admin"),
            ("buyer acme", BUYER_ACME_ID, "buyer"),
            ("seller alpha", SELLER_ALPHA_ID, "seller"),
            ("seller brush", SELLER_BRUSH_ID, "seller"),
        ]:
            print(f"  {label}: {create_access_token(user_id, role)}")


if __name__ == "__main__":
    asyncio.run(seed())
