"""Procurement discount analytics over committed discounts."""

from collections import defaultdict

from delivery.procurement.discount import ProcurementDiscount
from delivery.utils.queries import fetch_all

DEFAULT_TOP_PRODUCTS = 10


def _in_range(discount, start_date: str | None, end_date: str | None) -> bool:
    if start_date and discount.date < start_date:
        return False
    if end_date and discount.date > end_date:
        return False
    return True


def discount_analytics(
    start_date: str | None = None,
    end_date: str | None = None,
    top: int = DEFAULT_TOP_PRODUCTS,
) -> dict:
    """Totals across discounts in the (inclusive) date range and the products
    that saved the business the most."""
    discounts = [d for d in fetch_all(ProcurementDiscount) if _in_range(d, start_date, end_date)]

    totals = {
        "total_discount": sum(d.total_discount for d in discounts),
        "customer_share": sum(d.customer_share for d in discounts),
        "business_share": sum(d.business_share for d in discounts),
        "aggregated_quantity": sum(d.aggregated_quantity for d in discounts),
        "discount_count": len(discounts),
    }

    by_product = defaultdict(
        lambda: {"total_discount": 0, "customer_share": 0, "business_share": 0, "aggregated_quantity": 0}
    )
    for d in discounts:
        row = by_product[str(d.product_id)]
        row["total_discount"] += d.total_discount
        row["customer_share"] += d.customer_share
        row["business_share"] += d.business_share
        row["aggregated_quantity"] += d.aggregated_quantity

    ranked = sorted(by_product.items(), key=lambda item: (-item[1]["business_share"], item[0]))
    top_products = [{"product_id": product_id, **row} for product_id, row in ranked[:top]]

    return {
        "start_date": start_date,
        "end_date": end_date,
        "totals": totals,
        "top_products": top_products,
    }


def discounts_by_date(date: str) -> dict[str, ProcurementDiscount]:
    """Committed discounts for one delivery date, keyed by product id."""
    return {str(d.product_id): d for d in fetch_all(ProcurementDiscount, date=date)}
