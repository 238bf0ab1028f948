# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Los servicios dependen de este contrato y NO de la implementación JSON.
# Cualquier almacenamiento que lea y reemplace el documento completo de forma
# atómica puede sustituir a DocumentRepository sin tocar los servicios.
#
# ==============================================================================

from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable


Document = Dict[str, Any]
Mutator = Callable[[Document], Optional[Document]]


@runtime_checkable
class IDocumentStore(Protocol):
    """
    Almacén de un único documento JSON.

    - read_document(): documento completo, sin efectos
    - mutate(fn): lee, aplica fn sobre una copia profunda y persiste el
      resultado. Si fn lanza una excepción no se escribe nada.
    """

    def read_document(self) -> Document:
        """Lee el documento completo."""
        ...

    def mutate(self, fn: Mutator) -> Document:
        """Aplica una mutación todo-o-nada y retorna el documento nuevo."""
        ...
