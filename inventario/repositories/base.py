# ==============================================================================
# ALMACÉN JSON BASE
# ==============================================================================
# Carga y guarda un archivo JSON completo.
# Cada guardado escribe un temporal en la misma carpeta y lo reemplaza con
# os.replace: el archivo nunca queda a medio escribir.
# ==============================================================================

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Any

from inventario.logger import get_logger

log = get_logger('store')

CORRUPT_SUFFIX = '.corrupt'


class BaseRepository(ABC):
    """
    Base para repositorios guardados en un solo archivo JSON.

    Un RLock de proceso protege cada carga y cada guardado. No hay
    transacciones entre peticiones: gana la última escritura.
    """

    # Compartido por todas las instancias del proceso
    _file_lock = threading.RLock()

    def __init__(self, file_path: str):
        """
        Args:
            file_path: Ruta del archivo JSON (se crea si falta)
        """
        self.file_path = file_path
        folder = os.path.dirname(file_path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        if not os.path.exists(file_path):
            self._save(self._default_data())

    @abstractmethod
    def _default_data(self) -> Any:
        """Contenido de un archivo recién creado o ilegible."""

    def _load(self) -> Any:
        """
        Carga el archivo completo.

        Returns:
            Datos del JSON, o los datos por defecto si el archivo falta o
            no es JSON válido (el ilegible queda como <archivo>.corrupt)
        """
        with self._file_lock:
            try:
                with open(self.file_path, encoding='utf-8') as f:
                    return json.load(f)
            except FileNotFoundError:
                return self._default_data()
            except json.JSONDecodeError as e:
                log.warning("%s no es JSON válido (%s); se usa un documento vacío", self.file_path, e)
                self._keep_corrupt_copy()
                return self._default_data()

    def _keep_corrupt_copy(self) -> None:
        """Aparta el archivo ilegible como <archivo>.corrupt antes de que se sobrescriba."""
        corrupt_path = self.file_path + CORRUPT_SUFFIX
        try:
            os.replace(self.file_path, corrupt_path)
        except OSError as e:
            log.error("No se pudo apartar %s: %s", self.file_path, e)
            return
        log.warning("Archivo ilegible guardado en %s", corrupt_path)

    def _save(self, data: Any) -> None:
        """
        Guarda el archivo completo de forma atómica.

        Raises:
            OSError: No se pudo escribir (el archivo anterior queda intacto)
        """
        folder = os.path.dirname(self.file_path) or '.'
        with self._file_lock:
            fd, temp_path = tempfile.mkstemp(prefix='.db-', suffix='.tmp', dir=folder)
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(temp_path, self.file_path)
            except Exception:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise
