# ==============================================================================
# REPOSITORIO DEL DOCUMENTO
# ==============================================================================
# Encapsula todo el acceso a db.json.
# Toda la información del negocio vive en un único documento:
# {products, clients, orders, debts, cashflow, activities, pricing, settings}
# ==============================================================================

import copy
import os
from typing import Any, Dict

from inventario.logger import get_logger
from inventario.models import DELIVERY_DAYS
from inventario.repositories.base import BaseRepository
from inventario.repositories.interfaces import Document, Mutator

log = get_logger('store')

LIST_SECTIONS = ('products', 'clients', 'orders', 'debts', 'cashflow', 'activities')


def empty_document() -> Document:
    """Estructura de un documento sin datos."""
    return {
        'products': [],
        'clients': [],
        'orders': [],
        'debts': [],
        'cashflow': [],
        'activities': [],
        'pricing': {'precioCaja': 0, 'preciosPorComuna': {}},
        'settings': {'comunas': [], 'diasReparto': list(DELIVERY_DAYS)},
    }


def ensure_document_shape(data: Any) -> Document:
    """
    Completa las secciones faltantes sin perder claves desconocidas.

    Args:
        data: Documento leído del disco (puede venir incompleto)

    Returns:
        El mismo diccionario, con cada sección garantizada
    """
    if not isinstance(data, dict):
        return empty_document()
    defaults = empty_document()
    for section in LIST_SECTIONS:
        if not isinstance(data.get(section), list):
            data[section] = defaults[section]
    if not isinstance(data.get('pricing'), dict):
        data['pricing'] = defaults['pricing']
    if not isinstance(data.get('settings'), dict):
        data['settings'] = defaults['settings']
    return data


class DocumentRepository(BaseRepository):
    """
    Repositorio del documento completo.

    Formato de db.json:
    {
        "products": [{"id": "...", "name": "...", "unitPrice": 1500, ...}],
        "clients": [...],
        "orders": [{"id": "...", "items": [{"lineId": "...", "status": "pendiente"}]}],
        "debts": [...],
        "cashflow": [...],
        "activities": [...],
        "pricing": {"precioCaja": 0, "preciosPorComuna": {"Cartagena": {"__general__": 1400}}},
        "settings": {...}
    }
    """

    FILE_NAME = 'db.json'

    def __init__(self, base_path: str):
        """
        Args:
            base_path: Carpeta de datos donde vive db.json
        """
        file_path = os.path.join(base_path, self.FILE_NAME)
        super().__init__(file_path)

    def _default_data(self) -> Dict:
        return empty_document()

    def read_document(self) -> Document:
        """
        Lee el documento completo.

        Returns:
            Documento con todas sus secciones garantizadas
        """
        return ensure_document_shape(self._load())

    def mutate(self, fn: Mutator) -> Document:
        """
        Lee el documento, aplica fn sobre una copia profunda (borrador) y
        persiste el resultado.

        Args:
            fn: Función que recibe el borrador. Puede retornarlo o modificarlo
                en el lugar y retornar None.

        Returns:
            Documento persistido

        Raises:
            Cualquier excepción lanzada por fn (no se escribe nada)
        """
        current = self.read_document()
        draft = copy.deepcopy(current)
        result = fn(draft)
        mutated = ensure_document_shape(draft if result is None else result)
        self._save(mutated)
        log.debug("Documento guardado en %s", self.file_path)
        return mutated

    def write_document(self, data: Document) -> None:
        """Reemplaza el documento completo (importaciones y pruebas)."""
        self._save(ensure_document_shape(data))
