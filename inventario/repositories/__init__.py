# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia (un documento JSON).
#
# ESTRUCTURA:
# ├── interfaces.py          → Contrato IDocumentStore
# ├── base.py                → Lectura/escritura atómica de archivos JSON
# └── document_repository.py → Acceso a db.json (read_document / mutate)
# ==============================================================================

from .interfaces import IDocumentStore, Document, Mutator
from .base import BaseRepository
from .document_repository import (
    DocumentRepository,
    empty_document,
    ensure_document_shape,
)

__all__ = [
    'IDocumentStore',
    'Document',
    'Mutator',
    'BaseRepository',
    'DocumentRepository',
    'empty_document',
    'ensure_document_shape',
]
