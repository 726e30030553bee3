"""Central model registry: import all models so Alembic autodiscover works."""

from rfq_api.database import Base  # noqa: F401

from rfq_api.models.directory import (  # noqa: F401
    Admin,
    Buyer,
    Category,
    Product,
    Seller,
    product_categories,
)
from rfq_api.models.rfq import Rfq, RfqQuote, RfqTargetSeller  # noqa: F401
