# ==============================================================================
# SERVICIO DE PRECIOS
# ==============================================================================
# Resolución del precio efectivo por comuna.
#
# PRECEDENCIA:
#   1. Precio del producto en la comuna del cliente
#   2. Precio general de la comuna ('__general__')
#   3. Precio base del producto (unitPrice)
#
# Todas las vistas y operaciones que muestran o cobran un precio usan
# resolve_price(). No duplicar esta lógica en otro lugar.
# ==============================================================================

from typing import Any, Dict, Optional, Union

from inventario.logger import get_logger
from inventario.models import (
    GENERAL_PRICE_KEY,
    PricingConfig,
    PerProductOverride,
    normalize_price_value,
    parse_override,
    to_number,
    as_number,
    clean_text,
)
from inventario.performance_logger import profile_function
from inventario.repositories import Document, IDocumentStore
from inventario.services.activity_service import ActivityService
from inventario.services.errors import ValidationError

log = get_logger('pricing')

Number = Union[int, float]


def normalize_price_overrides(raw: Any) -> Dict[str, Dict[str, Number]]:
    """
    Normaliza la tabla comuna → precios.

    Un número suelto se convierte en {'__general__': precio}; los valores
    inválidos o negativos se descartan, igual que las comunas vacías.

    Args:
        raw: Tabla tal como está en el documento

    Returns:
        Tabla normalizada (solo diccionarios de precios válidos)
    """
    return PricingConfig.from_dict({'preciosPorComuna': raw}).to_dict()['preciosPorComuna']


def resolve_price(
    product_id: str,
    comuna: Optional[str],
    overrides_table: Any,
    fallback: Any
) -> Number:
    """
    Precio efectivo de un producto para un cliente de una comuna.

    Args:
        product_id: Producto a cotizar
        comuna: Comuna del cliente (None o vacía → precio base)
        overrides_table: preciosPorComuna (se acepta sin normalizar)
        fallback: Precio base del producto

    Returns:
        Precio resuelto
    """
    base = to_number(fallback)
    base = as_number(base) if base is not None else 0
    if not comuna or not isinstance(overrides_table, dict):
        return base
    override = parse_override(overrides_table.get(comuna))
    if override is None:
        return base
    return override.resolve(product_id, base)


def ensure_pricing_shape(doc: Document) -> Dict[str, Any]:
    """
    Reemplaza doc['pricing'] por su forma normalizada y la retorna.

    Las formas mal construidas se tratan como vacías, nunca como error.
    """
    doc['pricing'] = PricingConfig.from_dict(doc.get('pricing')).to_dict()
    return doc['pricing']


def remove_product_overrides(doc: Document, product_id: str) -> None:
    """
    Quita un producto de todas las tablas por comuna.
    Las comunas que quedan sin precios se eliminan.
    """
    pricing = ensure_pricing_shape(doc)
    table = pricing['preciosPorComuna']
    for comuna in list(table):
        prices = table[comuna]
        prices.pop(product_id, None)
        if not prices:
            del table[comuna]


class PricingService:
    """
    Servicio para precios por comuna.

    Responsabilidades:
    - Normalizar la sección pricing del documento
    - Resolver el precio efectivo de un producto para un cliente
    - Registrar precios por comuna (producto o general)
    """

    def __init__(self, document_repo: IDocumentStore, activity_service: ActivityService):
        self.document_repo = document_repo
        self.activity_service = activity_service

    def get_pricing(self, doc: Document = None) -> Dict[str, Any]:
        """Sección pricing normalizada (lee el documento si no se entrega)."""
        if doc is None:
            doc = self.document_repo.read_document()
        return PricingConfig.from_dict(doc.get('pricing')).to_dict()

    def price_for_client(
        self,
        doc: Document,
        product: Dict[str, Any],
        client: Optional[Dict[str, Any]]
    ) -> Number:
        """
        Precio del producto para el cliente dado.

        Args:
            doc: Documento (se usa su tabla preciosPorComuna)
            product: Producto del catálogo
            client: Cliente (o None → precio base)

        Returns:
            Precio resuelto
        """
        overrides = (doc.get('pricing') or {}).get('preciosPorComuna')
        comuna = (client or {}).get('comuna')
        return resolve_price(product.get('id'), comuna, overrides, product.get('unitPrice'))

    @profile_function
    def set_override(self, comuna: Any, product_id: Any, precio: Any) -> Dict[str, Any]:
        """
        Registra el precio de un producto (o el general) en una comuna.

        Args:
            comuna: Comuna (requerida)
            product_id: Id de producto o '__general__'
            precio: Precio no negativo

        Returns:
            Tabla preciosPorComuna normalizada

        Raises:
            ValidationError: Datos faltantes, precio inválido o producto inexistente
        """
        comuna = clean_text(comuna)
        product_id = clean_text(product_id)
        price = normalize_price_value(precio)

        if not comuna:
            raise ValidationError('comuna es requerida')
        if not product_id:
            raise ValidationError('productId es requerido')
        if price is None:
            raise ValidationError('precio debe ser un número válido')

        def apply(draft: Document) -> Document:
            pricing = ensure_pricing_shape(draft)
            product_name = 'Todos los productos'
            if product_id != GENERAL_PRICE_KEY:
                product = next((p for p in draft['products'] if p.get('id') == product_id), None)
                if product is None:
                    raise ValidationError('Producto no válido')
                product_name = product.get('name', '')

            table = pricing['preciosPorComuna']
            prices = dict(table.get(comuna, {}))
            prices[product_id] = price
            table[comuna] = PerProductOverride(prices).to_dict()

            self.activity_service.log_price_override(draft, product_name, comuna, price)
            ensure_pricing_shape(draft)
            return draft

        data = self.document_repo.mutate(apply)
        log.info("Precio por comuna actualizado: %s / %s → %s", comuna, product_id, price)
        return data['pricing']['preciosPorComuna']
