# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Punto único para obtener el repositorio del documento y los servicios.
#   - Un solo db.json por carpeta de datos
#   - Reloj e ids inyectables (las pruebas usan versiones deterministas)
#   - Instancias perezosas: se crean al primer uso
# ==============================================================================

import os
from typing import Optional

from inventario.repositories import DocumentRepository
from inventario.services import (
    ActivityService,
    CashflowService,
    CatalogService,
    ClientService,
    Clock,
    DebtService,
    IdGenerator,
    OrderService,
    PricingService,
    ReportService,
    SystemClock,
    UuidIdGenerator,
)

DEFAULT_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data')


class AppContainer:
    """
    Contenedor de dependencias de la aplicación (singleton).

    Uso:
        container = AppContainer(base_path='/path/to/data')
        order_service = container.order_service
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, base_path: str = None, clock: Clock = None, id_generator: IdGenerator = None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, base_path: str = None, clock: Clock = None, id_generator: IdGenerator = None):
        """
        Args:
            base_path: Carpeta de datos (donde vive db.json)
            clock: Reloj (por defecto SystemClock)
            id_generator: Generador de ids (por defecto UuidIdGenerator)
        """
        if self._initialized:
            return

        self._base_path = base_path or DEFAULT_DATA_DIR
        self.clock = clock or SystemClock()
        self.id_generator = id_generator or UuidIdGenerator()

        self._document_repo: Optional[DocumentRepository] = None

        self._activity_service: Optional[ActivityService] = None
        self._pricing_service: Optional[PricingService] = None
        self._catalog_service: Optional[CatalogService] = None
        self._client_service: Optional[ClientService] = None
        self._order_service: Optional[OrderService] = None
        self._cashflow_service: Optional[CashflowService] = None
        self._debt_service: Optional[DebtService] = None
        self._report_service: Optional[ReportService] = None

        self._initialized = True

    @property
    def base_path(self) -> str:
        return self._base_path

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def document_repo(self) -> DocumentRepository:
        """Repositorio de db.json (singleton)."""
        if self._document_repo is None:
            self._document_repo = DocumentRepository(self._base_path)
        return self._document_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def activity_service(self) -> ActivityService:
        if self._activity_service is None:
            self._activity_service = ActivityService(self.clock, self.id_generator)
        return self._activity_service

    @property
    def pricing_service(self) -> PricingService:
        if self._pricing_service is None:
            self._pricing_service = PricingService(self.document_repo, self.activity_service)
        return self._pricing_service

    @property
    def catalog_service(self) -> CatalogService:
        if self._catalog_service is None:
            self._catalog_service = CatalogService(
                self.document_repo,
                self.clock,
                self.id_generator,
                self.activity_service
            )
        return self._catalog_service

    @property
    def client_service(self) -> ClientService:
        if self._client_service is None:
            self._client_service = ClientService(
                self.document_repo,
                self.id_generator,
                self.activity_service
            )
        return self._client_service

    @property
    def order_service(self) -> OrderService:
        if self._order_service is None:
            self._order_service = OrderService(
                self.document_repo,
                self.clock,
                self.id_generator,
                self.activity_service,
                self.pricing_service
            )
        return self._order_service

    @property
    def cashflow_service(self) -> CashflowService:
        if self._cashflow_service is None:
            self._cashflow_service = CashflowService(
                self.document_repo,
                self.clock,
                self.id_generator,
                self.activity_service
            )
        return self._cashflow_service

    @property
    def debt_service(self) -> DebtService:
        if self._debt_service is None:
            self._debt_service = DebtService(
                self.document_repo,
                self.clock,
                self.id_generator,
                self.activity_service,
                self.pricing_service,
                self.cashflow_service
            )
        return self._debt_service

    @property
    def report_service(self) -> ReportService:
        if self._report_service is None:
            self._report_service = ReportService(
                self.document_repo,
                self.clock,
                self.pricing_service
            )
        return self._report_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """Descarta todas las instancias creadas."""
        self._document_repo = None
        self._activity_service = None
        self._pricing_service = None
        self._catalog_service = None
        self._client_service = None
        self._order_service = None
        self._cashflow_service = None
        self._debt_service = None
        self._report_service = None

    @classmethod
    def get_instance(
        cls,
        base_path: str = None,
        clock: Clock = None,
        id_generator: IdGenerator = None
    ) -> 'AppContainer':
        """Instancia singleton (los argumentos solo se usan en la primera llamada)."""
        if cls._instance is None:
            return cls(base_path, clock, id_generator)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia singleton (útil para tests)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


def get_container(
    base_path: str = None,
    clock: Clock = None,
    id_generator: IdGenerator = None
) -> AppContainer:
    """Contenedor de dependencias global."""
    return AppContainer.get_instance(base_path, clock, id_generator)
