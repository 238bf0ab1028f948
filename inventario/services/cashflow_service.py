# ==============================================================================
# SERVICIO DE FLUJO DE CAJA
# ==============================================================================
# Registro de ingresos y egresos con método de pago.
#
# RESUMEN:
#   totalIncome / totalExpense / balance → todos los movimientos
#   cash → solo efectivo, bank → solo transferencia (ingreso suma, egreso resta)
#   Los movimientos 'otro' cuentan en los totales pero no en cash/bank.
# ==============================================================================

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple

from inventario.logger import get_logger
from inventario.models import (
    CashflowEntry,
    CashflowType,
    PaymentMethod,
    to_number,
    as_number,
    clean_text,
)
from inventario.performance_logger import profile_function
from inventario.repositories import Document, IDocumentStore
from inventario.services.activity_service import ActivityService
from inventario.services.clock import Clock, IdGenerator, format_iso
from inventario.services.errors import NotFoundError, ValidationError

log = get_logger('cashflow')


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_entry_date(value: Any) -> Optional[str]:
    """
    Normaliza la fecha ingresada por el usuario.

    Args:
        value: Fecha ISO ('2024-05-01' o '2024-05-01T10:00:00Z'), o vacío

    Returns:
        ISO UTC con milisegundos, o None si no se entregó fecha

    Raises:
        ValidationError: La fecha no se puede interpretar
    """
    if value is None or value == '':
        return None
    parsed = _parse_datetime(value)
    if parsed is None:
        raise ValidationError('date no es válida')
    return format_iso(parsed)


def _sort_key(entry: Dict[str, Any]) -> float:
    parsed = _parse_datetime(entry.get('date')) or _parse_datetime(entry.get('createdAt'))
    return parsed.timestamp() if parsed else 0.0


def compute_summary(entries: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Calcula totales y posiciones por método de pago.

    Returns:
        {totalIncome, totalExpense, balance, cash, bank}
    """
    income = expense = cash = bank = 0.0
    for entry in entries:
        amount = to_number(entry.get('amount')) or 0.0
        entry_type = entry.get('type')
        if entry_type == CashflowType.INGRESO.value:
            income += amount
            sign = 1
        elif entry_type == CashflowType.EGRESO.value:
            expense += amount
            sign = -1
        else:
            continue

        method = PaymentMethod.normalize(entry.get('paymentMethod'))
        if method == PaymentMethod.EFECTIVO:
            cash += sign * amount
        elif method == PaymentMethod.TRANSFERENCIA:
            bank += sign * amount

    return {
        'totalIncome': as_number(income),
        'totalExpense': as_number(expense),
        'balance': as_number(income - expense),
        'cash': as_number(cash),
        'bank': as_number(bank),
    }


class CashflowService:
    """
    Servicio del flujo de caja.

    Responsabilidades:
    - Registrar y eliminar movimientos
    - Calcular el resumen (totales, efectivo, banco)
    - Construir ingresos para otros servicios (cobro de deudas)
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

    def build_entry(
        self,
        entry_type: Any,
        amount: Any,
        category: Any = '',
        description: Any = '',
        date: Any = None,
        payment_method: Any = None
    ) -> Dict[str, Any]:
        """
        Valida y construye un movimiento (sin persistirlo).

        Args:
            entry_type: 'egreso' → egreso; cualquier otro valor → ingreso
            amount: Monto > 0
            category: Categoría libre
            description: Descripción libre
            date: Fecha del movimiento (por defecto ahora)
            payment_method: efectivo / transferencia / otro

        Returns:
            Movimiento como diccionario

        Raises:
            ValidationError: Monto no positivo o fecha inválida
        """
        parsed_amount = to_number(amount)
        if parsed_amount is None or parsed_amount <= 0:
            raise ValidationError('amount debe ser numérico y mayor a 0')

        now = self.clock.now_iso()
        entry_date = parse_entry_date(date) or now
        kind = CashflowType.EGRESO if entry_type == CashflowType.EGRESO.value else CashflowType.INGRESO

        return CashflowEntry(
            id=self.id_generator.new_id(),
            type=kind,
            amount=as_number(parsed_amount),
            date=entry_date,
            created_at=now,
            category=clean_text(category),
            description=clean_text(description),
            payment_method=PaymentMethod.normalize(payment_method),
        ).to_dict()

    def summary(self, doc: Document = None) -> Dict[str, Any]:
        if doc is None:
            doc = self.document_repo.read_document()
        return compute_summary(doc['cashflow'])

    def list_transactions(self) -> Dict[str, Any]:
        """
        Historial completo, fecha más reciente primero.

        Returns:
            {generatedAt, transactions, summary}
        """
        doc = self.document_repo.read_document()
        transactions = sorted(doc['cashflow'], key=_sort_key, reverse=True)
        return {
            'generatedAt': self.clock.now_iso(),
            'transactions': transactions,
            'summary': compute_summary(transactions),
        }

    @profile_function
    def create_entry(self, payload: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        Registra un movimiento.

        Args:
            payload: {type, amount, category, description, date, paymentMethod}

        Returns:
            Tupla (movimiento, resumen)
        """
        entry = self.build_entry(
            payload.get('type'),
            payload.get('amount'),
            payload.get('category'),
            payload.get('description'),
            payload.get('date'),
            payload.get('paymentMethod'),
        )

        def apply(draft: Document) -> Document:
            draft['cashflow'].append(entry)
            self.activity_service.log_cashflow_recorded(draft, entry)
            return draft

        data = self.document_repo.mutate(apply)
        log.info("Movimiento %s registrado: %s %s", entry['id'], entry['type'], entry['amount'])
        return entry, compute_summary(data['cashflow'])

    @profile_function
    def delete_entry(self, entry_id: str) -> Dict[str, Any]:
        """
        Elimina un movimiento. No afecta deudas aunque provenga de un cobro.

        Returns:
            Resumen actualizado

        Raises:
            NotFoundError: El movimiento no existe
        """
        def apply(draft: Document) -> Document:
            entry = next((e for e in draft['cashflow'] if e.get('id') == entry_id), None)
            if entry is None:
                raise NotFoundError('Movimiento no encontrado')
            draft['cashflow'] = [e for e in draft['cashflow'] if e.get('id') != entry_id]
            self.activity_service.log_cashflow_deleted(draft, entry)
            return draft

        data = self.document_repo.mutate(apply)
        return compute_summary(data['cashflow'])
