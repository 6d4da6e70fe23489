"""Admin: dashboard headline figures."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.db.models import Order, Product, User
from storefront.schemas import DashboardStats
from storefront.services.admin.orders import recent_orders

logger = logging.getLogger(__name__)

REVENUE_STATUSES = ("paid", "shipped", "delivered")
RECENT_ORDERS_LIMIT = 5


# PUBLIC_INTERFACE
def get_dashboard_stats(db: Session) -> DashboardStats:
    """Revenue and sales over settled orders, catalog and user counts, and the latest orders."""
    try:
        revenue, sales = db.execute(
            select(func.coalesce(func.sum(Order.total_amount), 0), func.count(Order.id)).where(
                Order.status.in_(REVENUE_STATUSES)
            )
        ).one()
        total_products = db.execute(select(func.count(Product.id))).scalar_one()
        total_users = db.execute(select(func.count(User.id))).scalar_one()
        latest = recent_orders(db, RECENT_ORDERS_LIMIT)
    except SQLAlchemyError as exc:
        logger.exception("Error fetching dashboard stats")
        raise RuntimeError("Failed to fetch dashboard statistics") from exc

    return DashboardStats(
        total_revenue=float(revenue),
        total_sales=sales,
        total_products=total_products,
        total_users=total_users,
        recent_orders=latest,
    )
