"""Inventory reports: current stock and history read from the stock ledger."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, case, func, or_, select

from retail.exceptions import ProductNotFoundError
from retail.models import InventoryTransaction, Product, ProductStatus
from retail.services.results import InventoryLineResult, TransactionResult
from retail.services.stock_ledger_service import ledger_totals
from retail.utils.number_format import CENTS


def product_history(session, product_id: int, limit: int = 100) -> List[TransactionResult]:
    """Ledger rows for a product, newest first."""
    if session.get(Product, product_id) is None:
        raise ProductNotFoundError(product_id)

    rows = session.execute(
        select(InventoryTransaction)
        .where(InventoryTransaction.product_id == product_id)
        .order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
        .limit(limit)
    ).scalars().all()
    return [TransactionResult.from_model(tx) for tx in rows]


def inventory_as_of(session, as_of: datetime) -> List[Dict]:
    """
    Stock per product at a point in time, rebuilt from the ledger.

    Products created after ``as_of`` or never moved report 0.
    """
    totals = ledger_totals(session, as_of=as_of)
    products = session.execute(
        select(Product.id, Product.sku, Product.name, Product.stock_quantity).order_by(Product.id)
    ).all()

    return [
        {
            'product_id': p.id,
            'sku': p.sku,
            'name': p.name,
            'quantity': totals.get(p.id, 0),
            'current_quantity': p.stock_quantity,
        }
        for p in products
    ]


def current_inventory(session, search: Optional[str] = None, limit: int = 50) -> Dict[str, Any]:
    """
    Current stock of active products with its value at cost price.

    Lines are ordered by stock ascending so empty shelves come first. The
    summary covers every matching product, not only the returned page.
    Status is ``out_of_stock`` at zero, ``low`` at or below ``min_stock``,
    ``high`` at or above ``max_stock`` and ``normal`` otherwise.
    """
    conditions = [Product.status == ProductStatus.ACTIVE]
    if search:
        pattern = f'%{search.strip().lower()}%'
        conditions.append(or_(func.lower(Product.sku).like(pattern), func.lower(Product.name).like(pattern)))

    products = session.execute(
        select(Product).where(*conditions)
        .order_by(Product.stock_quantity.asc(), Product.id)
        .limit(limit)
    ).scalars().all()

    in_stock = Product.stock_quantity > 0
    summary = session.execute(
        select(
            func.count(Product.id),
            func.coalesce(func.sum(Product.stock_quantity), 0),
            func.sum(Product.stock_quantity * Product.cost_price),
            func.sum(case((Product.stock_quantity == 0, 1), else_=0)),
            func.sum(case((and_(in_stock, Product.stock_quantity <= Product.min_stock), 1), else_=0)),
        ).where(*conditions)
    ).one()

    return {
        'items': [
            InventoryLineResult.from_model(p, _inventory_value(p), _stock_status(p)).to_dict()
            for p in products
        ],
        'summary': {
            'total_products': summary[0],
            'total_quantity': int(summary[1]),
            'total_inventory_value': str(Decimal(str(summary[2] or 0)).quantize(CENTS)),
            'out_of_stock_count': int(summary[3] or 0),
            'low_stock_count': int(summary[4] or 0),
        },
    }


def _inventory_value(product) -> Decimal:
    return (Decimal(product.cost_price or 0) * product.stock_quantity).quantize(CENTS)


def _stock_status(product) -> str:
    if product.stock_quantity == 0:
        return 'out_of_stock'
    if product.is_low_stock:
        return 'low'
    if product.max_stock is not None and product.stock_quantity >= product.max_stock:
        return 'high'
    return 'normal'
