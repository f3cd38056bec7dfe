"""Django ORM implementation of the Product repository.

Rows are locked with ``SELECT FOR UPDATE`` in primary-key order so that
concurrent reservations touching the same products cannot deadlock.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.products.exceptions import InsufficientStock, ProductNotFound
from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository, StockLine

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    def get_by_id(self, id: str) -> Optional[Product]:
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def save(self, entity: Product) -> Product:
        entity.save()
        return entity

    @transaction.atomic
    def reserve(self, lines: Iterable[StockLine]) -> None:
        quantities = _merge(lines)
        products = self._lock(quantities)
        for product_id, quantity in sorted(quantities.items(), key=lambda kv: str(kv[0])):
            product = products.get(product_id)
            if product is None:
                raise ProductNotFound(f"Product {product_id} not found.")
            if product.stock_quantity < quantity:
                raise InsufficientStock(
                    f"Product {product.sku}: requested {quantity}, "
                    f"available {product.stock_quantity}."
                )
            product.stock_quantity -= quantity
            product.save(update_fields=["stock_quantity"])
            logger.info(
                "product.stock_reserved",
                product_id=str(product_id),
                quantity=quantity,
                remaining=product.stock_quantity,
            )

    @transaction.atomic
    def release(self, lines: Iterable[StockLine]) -> None:
        quantities = _merge(lines)
        products = self._lock(quantities)
        for product_id, quantity in sorted(quantities.items(), key=lambda kv: str(kv[0])):
            product = products.get(product_id)
            if product is None:
                logger.warning("product.release_skipped", product_id=str(product_id))
                continue
            product.stock_quantity += quantity
            product.save(update_fields=["stock_quantity"])
            logger.info(
                "product.stock_released",
                product_id=str(product_id),
                quantity=quantity,
                restored_stock=product.stock_quantity,
            )

    @staticmethod
    def _lock(quantities: Dict[UUID, int]) -> Dict[UUID, Product]:
        locked: List[Product] = list(
            Product.objects.select_for_update()
            .filter(id__in=list(quantities))
            .order_by("id")
        )
        return {product.id: product for product in locked}


def _merge(lines: Iterable[StockLine]) -> Dict[UUID, int]:
    merged: Dict[UUID, int] = defaultdict(int)
    for product_id, quantity in lines:
        merged[UUID(str(product_id))] += quantity
    return dict(merged)
