# rfq_api/services/directory.py
"""
Identity and catalog collaborators.

The RFQ core only needs a handful of read-only questions answered about
sellers, products and categories. They are expressed as abstract ports so
the services can be exercised against fakes, with SQL adapters reading the
tables the identity and catalog services own.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rfq_api.models.directory import (
    Admin,
    Buyer,
    Category,
    Product,
    Seller,
    product_categories,
)

logger = structlog.get_logger()


class IdentityDirectory(ABC):
    """Lookups against the identity service's user records."""

    @abstractmethod
    async def seller_exists(self, seller_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def find_unknown_sellers(self, seller_ids: Iterable[str]) -> list[str]:
        """Return the ids that do not belong to any seller, in input order."""
        raise NotImplementedError

    @abstractmethod
    async def seller_status(self, seller_id: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    async def get_sellers(self, seller_ids: Iterable[str]) -> dict[str, Seller]:
        raise NotImplementedError

    @abstractmethod
    async def get_buyer(self, buyer_id: str) -> Optional[Buyer]:
        raise NotImplementedError

    @abstractmethod
    async def get_admin(self, admin_id: str) -> Optional[Admin]:
        raise NotImplementedError


class Catalog(ABC):
    """Lookups against the product catalog."""

    @abstractmethod
    async def categories_of_seller(self, seller_id: str) -> set[str]:
        raise NotImplementedError

    @abstractmethod
    async def product_exists(self, product_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def category_exists(self, category_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def get_product(self, product_id: str) -> Optional[Product]:
        raise NotImplementedError

    @abstractmethod
    async def get_category(self, category_id: str) -> Optional[Category]:
        raise NotImplementedError


class SQLIdentityDirectory(IdentityDirectory):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def seller_exists(self, seller_id: str) -> bool:
        return await self.session.get(Seller, seller_id) is not None

    async def find_unknown_sellers(self, seller_ids: Iterable[str]) -> list[str]:
        wanted = list(dict.fromkeys(seller_ids))
        if not wanted:
            return []
        result = await self.session.execute(
            select(Seller.id).where(Seller.id.in_(wanted))
        )
        known = {row[0] for row in result.all()}
        unknown = [sid for sid in wanted if sid not in known]
        if unknown:
            logger.debug("unknown_sellers", requested=len(wanted), unknown=unknown)
        return unknown

    async def seller_status(self, seller_id: str) -> Optional[str]:
        result = await self.session.execute(
            select(Seller.status).where(Seller.id == seller_id)
        )
        return result.scalar_one_or_none()

    async def get_sellers(self, seller_ids: Iterable[str]) -> dict[str, Seller]:
        ids = list(dict.fromkeys(seller_ids))
        if not ids:
            return {}
        result = await self.session.execute(select(Seller).where(Seller.id.in_(ids)))
        return {s.id: s for s in result.scalars().all()}

    async def get_buyer(self, buyer_id: str) -> Optional[Buyer]:
        return await self.session.get(Buyer, buyer_id)

    async def get_admin(self, admin_id: str) -> Optional[Admin]:
        return await self.session.get(Admin, admin_id)


class SQLCatalog(Catalog):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def categories_of_seller(self, seller_id: str) -> set[str]:
        result = await self.session.execute(
            select(product_categories.c.category_id)
            .join(Product, Product.id == product_categories.c.product_id)
            .where(Product.seller_id == seller_id)
            .distinct()
        )
        return {row[0] for row in result.all()}

    async def product_exists(self, product_id: str) -> bool:
        return await self.session.get(Product, product_id) is not None

    async def category_exists(self, category_id: str) -> bool:
        return await self.session.get(Category, category_id) is not None

    async def get_product(self, product_id: str) -> Optional[Product]:
        return await self.session.get(Product, product_id)

    async def get_category(self, category_id: str) -> Optional[Category]:
        return await self.session.get(Category, category_id)
