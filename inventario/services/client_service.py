# ==============================================================================
# SERVICIO DE CLIENTES
# ==============================================================================
# Directorio de clientes de reparto.
# Eliminar un cliente elimina también todos sus pedidos.
# ==============================================================================

from typing import Any, Dict, List, Tuple

from inventario.logger import get_logger
from inventario.models import Client, clean_text
from inventario.performance_logger import profile_function
from inventario.repositories import Document, IDocumentStore
from inventario.services.activity_service import ActivityService
from inventario.services.clock import IdGenerator
from inventario.services.errors import NotFoundError, ValidationError
from inventario.services.order_service import find_by_id

log = get_logger('clients')

REQUIRED_FIELDS = ('nombreCompleto', 'telefono', 'direccion', 'comuna')
TEXT_FIELDS = REQUIRED_FIELDS + ('diaReparto', 'region')
OPTIONAL_FIELDS = ('diaReparto', 'region')


class ClientService:
    """
    Servicio para gestión de clientes.

    Responsabilidades:
    - Alta, edición y baja de clientes
    - Baja en cascada de los pedidos del cliente
    """

    def __init__(
        self,
        document_repo: IDocumentStore,
        id_generator: IdGenerator,
        activity_service: ActivityService
    ):
        self.document_repo = document_repo
        self.id_generator = id_generator
        self.activity_service = activity_service

    def list_clients(self) -> List[Dict[str, Any]]:
        return self.document_repo.read_document()['clients']

    @profile_function
    def create_client(self, payload: Dict[str, Any]) -> Tuple[Dict[str, Any], int]:
        """
        Agrega un cliente.

        Args:
            payload: {nombreCompleto, telefono, direccion, comuna, diaReparto?, region?}

        Returns:
            Tupla (cliente, total de clientes)

        Raises:
            ValidationError: Falta algún campo requerido
        """
        values = {key: clean_text(payload.get(key)) for key in TEXT_FIELDS}
        if not all(values[key] for key in REQUIRED_FIELDS):
            raise ValidationError('Campos requeridos: ' + ', '.join(REQUIRED_FIELDS))

        client = Client(
            id=self.id_generator.new_id(),
            nombre_completo=values['nombreCompleto'],
            telefono=values['telefono'],
            direccion=values['direccion'],
            comuna=values['comuna'],
            dia_reparto=values['diaReparto'] or None,
            region=values['region'] or None,
        ).to_dict()

        def apply(draft: Document) -> Document:
            draft['clients'].append(client)
            self.activity_service.log_client_added(draft, client)
            return draft

        data = self.document_repo.mutate(apply)
        log.info("Cliente agregado: %s", client['id'])
        return client, len(data['clients'])

    @profile_function
    def update_client(self, client_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Edita un cliente.

        Acepta 'nombre' como alias de 'nombreCompleto'. Cada campo entregado
        se guarda recortado; diaReparto o region vacíos se eliminan.

        Raises:
            NotFoundError: El cliente no existe
        """
        updates = {key: clean_text(payload[key]) for key in TEXT_FIELDS if key in payload}
        if 'nombre' in payload:
            updates['nombreCompleto'] = clean_text(payload['nombre'])

        def apply(draft: Document) -> Document:
            client = find_by_id(draft['clients'], client_id)
            if client is None:
                raise NotFoundError('Cliente no encontrado')
            for key, value in updates.items():
                if key in OPTIONAL_FIELDS and not value:
                    client.pop(key, None)
                else:
                    client[key] = value
            self.activity_service.log_client_updated(draft, client)
            return draft

        data = self.document_repo.mutate(apply)
        return find_by_id(data['clients'], client_id)

    @profile_function
    def delete_client(self, client_id: str) -> List[str]:
        """
        Elimina un cliente y todos sus pedidos.

        Returns:
            Ids de los pedidos eliminados
        """
        removed: List[str] = []

        def apply(draft: Document) -> Document:
            client = find_by_id(draft['clients'], client_id)
            if client is None:
                raise NotFoundError('Cliente no encontrado')
            draft['clients'] = [c for c in draft['clients'] if c.get('id') != client_id]
            remaining = []
            for order in draft['orders']:
                if order.get('clienteId') == client_id:
                    removed.append(order.get('id'))
                else:
                    remaining.append(order)
            draft['orders'] = remaining
            self.activity_service.log_client_deleted(draft, client)
            return draft

        self.document_repo.mutate(apply)
        log.info("Cliente %s eliminado con %d pedidos", client_id, len(removed))
        return removed
