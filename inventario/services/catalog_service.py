# ==============================================================================
# SERVICIO DE CATÁLOGO
# ==============================================================================
# CRUD de productos.
# Eliminar un producto lo quita también de los precios por comuna y de las
# líneas de pedidos (los pedidos que quedan sin líneas se eliminan).
# ==============================================================================

import math
from typing import Any, Dict, List

from inventario.logger import get_logger
from inventario.models import (
    DEFAULT_CATEGORY,
    Product,
    to_number,
    as_number,
    clean_text,
    normalize_unit,
)
from inventario.performance_logger import profile_function
from inventario.repositories import Document, IDocumentStore
from inventario.services.activity_service import ActivityService
from inventario.services.clock import Clock, IdGenerator
from inventario.services.errors import NotFoundError, ValidationError
from inventario.services.order_service import find_by_id, normalize_order, recompute_order_status
from inventario.services.pricing_service import remove_product_overrides

log = get_logger('catalog')

EDITABLE_FIELDS = ('name', 'unitPrice', 'category', 'notes', 'unit')


def normalize_product(product: Dict[str, Any]) -> Dict[str, Any]:
    """Copia del producto con la unidad normalizada (para respuestas)."""
    return {**product, 'unit': normalize_unit(product.get('unit'))}


def _category(value: Any) -> str:
    return clean_text(value) or DEFAULT_CATEGORY


class CatalogService:
    """
    Servicio para gestión del catálogo de productos.

    Responsabilidades:
    - Crear, editar y eliminar productos
    - Cambiar el precio base
    - Limpieza en cascada de pedidos y precios por comuna
    """

    def __init__(
        self,
        document_repo: IDocumentStore,
        clock: Clock,
        id_generator: IdGenerator,
        activity_service: ActivityService
    ):
        self.document_repo = document_repo
        self.clock = clock
        self.id_generator = id_generator
        self.activity_service = activity_service

    def list_products(self) -> List[Dict[str, Any]]:
        doc = self.document_repo.read_document()
        return [normalize_product(p) for p in doc['products']]

    @profile_function
    def create_product(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Crea un producto.

        Args:
            payload: {name, unitPrice?, category?, notes?, unit?}

        Returns:
            Producto creado

        Raises:
            ValidationError: Falta el nombre o el precio es inválido
        """
        name = clean_text(payload.get('name'))
        if not name:
            raise ValidationError('El campo name es requerido')

        raw_price = payload.get('unitPrice', 0)
        price = 0 if raw_price is None else to_number(raw_price)
        if price is None or price < 0:
            raise ValidationError('unitPrice debe ser un número mayor o igual a 0')

        product = Product(
            id=self.id_generator.new_id(),
            name=name,
            unit_price=as_number(float(price)),
            category=_category(payload.get('category')),
            notes=clean_text(payload.get('notes')),
            unit=normalize_unit(payload.get('unit')),
        ).to_dict()

        def apply(draft: Document) -> Document:
            draft['products'].append(product)
            self.activity_service.log_product_created(draft, product)
            return draft

        self.document_repo.mutate(apply)
        log.info("Producto creado: %s (%s)", product['name'], product['id'])
        return product

    @profile_function
    def update_product(self, product_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Edita los campos permitidos de un producto.

        Un unitPrice no numérico se ignora; uno negativo es un error.

        Returns:
            Producto actualizado

        Raises:
            NotFoundError: El producto no existe
            ValidationError: Nombre vacío o precio negativo
        """
        updates: Dict[str, Any] = {}
        for key in EDITABLE_FIELDS:
            if key not in payload:
                continue
            value = payload[key]
            if key == 'name':
                if not clean_text(value):
                    raise ValidationError('El nombre no puede quedar vacío')
                updates['name'] = clean_text(value)
            elif key == 'unitPrice':
                price = to_number(value)
                if price is None:
                    continue
                if price < 0:
                    raise ValidationError('unitPrice debe ser mayor o igual a 0')
                updates['unitPrice'] = as_number(price)
            elif key == 'category':
                updates['category'] = _category(value)
            elif key == 'notes':
                updates['notes'] = clean_text(value)
            elif key == 'unit':
                updates['unit'] = normalize_unit(value)

        def apply(draft: Document) -> Document:
            product = find_by_id(draft['products'], product_id)
            if product is None:
                raise NotFoundError('Producto no encontrado')
            product.update(updates)
            self.activity_service.log_product_updated(draft, product)
            return draft

        data = self.document_repo.mutate(apply)
        return normalize_product(find_by_id(data['products'], product_id))

    @profile_function
    def set_price(self, product_id: str, unit_price: Any) -> Dict[str, Any]:
        """
        Cambia el precio base de un producto.

        Args:
            product_id: Producto
            unit_price: Número >= 0 (strings y booleanos se rechazan)

        Returns:
            Producto actualizado
        """
        if isinstance(unit_price, bool) or not isinstance(unit_price, (int, float)):
            raise ValidationError('unitPrice debe ser numérico')
        if not math.isfinite(unit_price) or unit_price < 0:
            raise ValidationError('unitPrice debe ser numérico')
        price = as_number(unit_price)

        def apply(draft: Document) -> Document:
            product = find_by_id(draft['products'], product_id)
            if product is None:
                raise NotFoundError('Producto no encontrado')
            product['unitPrice'] = price
            self.activity_service.log_price_updated(draft, product)
            return draft

        data = self.document_repo.mutate(apply)
        return normalize_product(find_by_id(data['products'], product_id))

    @profile_function
    def delete_product(self, product_id: str) -> Dict[str, Any]:
        """
        Elimina un producto con limpieza en cascada.

        - Se quita de todas las tablas de precios por comuna
        - Se quita de las líneas de pedidos; los pedidos sin líneas se eliminan
        - Los pedidos ajustados recalculan estado y deliveredAt

        Returns:
            {productId, adjustedOrders, removedOrders}

        Raises:
            NotFoundError: El producto no existe
        """
        adjusted: List[str] = []
        removed: List[str] = []

        def apply(draft: Document) -> Document:
            product = find_by_id(draft['products'], product_id)
            if product is None:
                raise NotFoundError('Producto no encontrado')
            draft['products'] = [p for p in draft['products'] if p.get('id') != product_id]
            remove_product_overrides(draft, product_id)

            now = self.clock.now_iso()
            remaining = []
            for order in draft['orders']:
                items = order.get('items')
                if not isinstance(items, list) or not items:
                    remaining.append(order)
                    continue
                kept = [item for item in items if (item or {}).get('productId') != product_id]
                if not kept:
                    removed.append(order.get('id'))
                    continue
                if len(kept) != len(items):
                    order['items'] = kept
                    normalize_order(order)
                    recompute_order_status(order, now)
                    order['updatedAt'] = now
                    adjusted.append(order.get('id'))
                remaining.append(order)
            draft['orders'] = remaining

            self.activity_service.log_product_deleted(draft, product, adjusted, removed)
            return draft

        self.document_repo.mutate(apply)
        log.info(
            "Producto %s eliminado (%d pedidos ajustados, %d eliminados)",
            product_id, len(adjusted), len(removed),
        )
        return {'productId': product_id, 'adjustedOrders': adjusted, 'removedOrders': removed}
