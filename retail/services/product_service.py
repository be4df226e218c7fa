"""Product catalog helpers used by the inventory workflows."""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from retail.database import transaction
from retail.exceptions import InvalidRequestError, NothingToUpdateError, ProductNotFoundError
from retail.models import Product, ProductStatus
from retail.services.results import ProductResult
from retail.services.stock_ledger_service import lock_products
from retail.utils.number_format import parse_money, parse_quantity

logger = logging.getLogger(__name__)


def create_product(
    session,
    sku: str,
    name: str,
    price,
    cost_price=0,
    min_stock: int = 0,
    max_stock: Optional[int] = None,
    description: Optional[str] = None,
) -> ProductResult:
    """
    Create a product with zero stock.

    Stock only enters through a confirmed stock-in receipt so the ledger
    can always reconstruct it.

    Raises:
        InvalidRequestError: missing sku/name, bad price or duplicate sku
    """
    sku = (sku or '').strip()
    name = (name or '').strip()
    if not sku or not name:
        raise InvalidRequestError('sku and name are required')

    price = parse_money(price, 'price')
    cost_price = parse_money(cost_price, 'cost_price')
    min_stock = _non_negative_int(min_stock, 'min_stock')
    max_stock = _non_negative_int(max_stock, 'max_stock') if max_stock is not None else None
    if max_stock is not None and max_stock < min_stock:
        raise InvalidRequestError('max_stock cannot be lower than min_stock')

    with transaction(session):
        existing = session.execute(select(Product.id).where(Product.sku == sku)).first()
        if existing:
            raise InvalidRequestError(f'A product with sku "{sku}" already exists')

        product = Product(
            sku=sku,
            name=name,
            description=description,
            price=price,
            cost_price=cost_price,
            stock_quantity=0,
            min_stock=min_stock,
            max_stock=max_stock,
            status=ProductStatus.ACTIVE,
        )
        session.add(product)
        session.flush()
        product_id = product.id

    logger.info("Product #%s (%s) created", product_id, sku)
    return get_product(session, product_id)


def get_product(session, product_id: int) -> ProductResult:
    product = session.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    return ProductResult.from_model(product)


def update_product(session, product_id: int, changes: Dict[str, Any]) -> ProductResult:
    """
    Update catalog fields of an active product.

    Updatable: sku, name, description, price, cost_price, min_stock,
    max_stock. Unknown keys are ignored. Stock is never edited here; it
    changes only through orders and stock-in receipts.

    Raises:
        InvalidRequestError: stock_quantity supplied, bad value, duplicate
            sku, or max_stock below min_stock
        NothingToUpdateError: no updatable field supplied
        ProductNotFoundError: product missing or deleted
    """
    changes = changes or {}
    if 'stock_quantity' in changes:
        raise InvalidRequestError(
            'stock_quantity can only change through orders and stock-in receipts'
        )

    updates = _parse_product_changes(changes)
    if not updates:
        raise NothingToUpdateError()

    with transaction(session):
        product = lock_products(session, [product_id]).get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)

        if 'sku' in updates:
            duplicate = session.execute(
                select(Product.id).where(Product.sku == updates['sku'], Product.id != product_id)
            ).first()
            if duplicate:
                raise InvalidRequestError(f'A product with sku "{updates["sku"]}" already exists')

        min_stock = updates.get('min_stock', product.min_stock)
        max_stock = updates.get('max_stock', product.max_stock)
        if max_stock is not None and max_stock < min_stock:
            raise InvalidRequestError('max_stock cannot be lower than min_stock')

        for field, value in updates.items():
            setattr(product, field, value)

    logger.info("Product #%s updated: %s", product_id, ', '.join(sorted(updates)))
    return get_product(session, product_id)


def soft_delete_product(session, product_id: int) -> ProductResult:
    """Mark a product deleted. Its rows and history are kept."""
    with transaction(session):
        product = session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        product.status = ProductStatus.DELETED

    logger.info("Product #%s marked deleted", product_id)
    return get_product(session, product_id)


def list_low_stock(session, threshold: Optional[int] = None) -> List[ProductResult]:
    """Active products at or below their minimum (or a fixed threshold)."""
    query = select(Product).where(Product.status == ProductStatus.ACTIVE)
    if threshold is None:
        query = query.where(Product.stock_quantity <= Product.min_stock)
    else:
        query = query.where(Product.stock_quantity < threshold)
    query = query.order_by(Product.stock_quantity.asc(), Product.id)

    return [ProductResult.from_model(p) for p in session.execute(query).scalars()]


def _parse_product_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    updates = {}
    for field in ('sku', 'name'):
        if field in changes:
            value = changes[field]
            if not isinstance(value, str) or not value.strip():
                raise InvalidRequestError(f'{field} cannot be empty')
            updates[field] = value.strip()
    if 'description' in changes:
        updates['description'] = changes['description'] or None
    for field in ('price', 'cost_price'):
        if field in changes:
            updates[field] = parse_money(changes[field], field)
    if 'min_stock' in changes:
        updates['min_stock'] = _non_negative_int(changes['min_stock'], 'min_stock')
    if 'max_stock' in changes:
        value = changes['max_stock']
        updates['max_stock'] = None if value in (None, '') else _non_negative_int(value, 'max_stock')
    return updates


def _non_negative_int(value, field: str) -> int:
    if value in (None, '', 0, '0'):
        return 0
    return parse_quantity(value, field)
