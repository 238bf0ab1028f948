# ==============================================================================
# SERVICIO DE BACKUPS
# ==============================================================================
# Un ZIP diario con db.json en <data_dir>/backups/backup_YYYY-MM-DD.zip.
# Se conservan los MAX_BACKUPS más recientes; los demás se borran.
# Se ejecuta una vez al iniciar la app (INVENTARIO_BACKUPS=0 lo desactiva).
# ==============================================================================

import os
import zipfile
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Tuple

from inventario.logger import get_logger

log = get_logger('backup')

BACKUP_PREFIX = 'backup_'
BACKUP_SUFFIX = '.zip'
DATE_FORMAT = '%Y-%m-%d'


def backup_name(day: date) -> str:
    return f"{BACKUP_PREFIX}{day.strftime(DATE_FORMAT)}{BACKUP_SUFFIX}"


def parse_backup_date(name: str) -> Optional[date]:
    """Fecha de un archivo backup_YYYY-MM-DD.zip; None para cualquier otro nombre."""
    if not (name.startswith(BACKUP_PREFIX) and name.endswith(BACKUP_SUFFIX)):
        return None
    stamp = name[len(BACKUP_PREFIX):-len(BACKUP_SUFFIX)]
    try:
        return datetime.strptime(stamp, DATE_FORMAT).date()
    except ValueError:
        return None


@dataclass
class BackupResult:
    backup_path: str
    success: bool = False
    message: str = ''
    files_added: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return asdict(self)


class BackupService:
    """
    Backups diarios de la carpeta de datos.

    Uso:
        BackupService('/app/data').run_daily_backup()

    Args:
        data_dir: Carpeta donde vive db.json
        today: Fecha actual (inyectable en pruebas)
    """

    DATA_FILES = ('db.json',)
    MAX_BACKUPS = 7

    def __init__(self, data_dir: str, today: Callable[[], date] = None):
        self.data_dir = data_dir
        self.backup_root = os.path.join(data_dir, 'backups')
        self._today = today or date.today
        os.makedirs(self.backup_root, exist_ok=True)

    def today_path(self) -> str:
        return os.path.join(self.backup_root, backup_name(self._today()))

    def has_today_backup(self) -> bool:
        path = self.today_path()
        return os.path.isfile(path) and os.path.getsize(path) > 0

    def list_backups(self) -> List[str]:
        """Nombres de backups válidos, el más reciente primero."""
        dated = []
        for name in os.listdir(self.backup_root):
            day = parse_backup_date(name)
            if day is not None and os.path.isfile(os.path.join(self.backup_root, name)):
                dated.append((day, name))
        return [name for _, name in sorted(dated, reverse=True)]

    def _write_zip(self, zip_path: str) -> Tuple[int, List[str]]:
        """
        Copia DATA_FILES al ZIP. Un archivo que no existe se omite sin error.

        Returns:
            Tupla (archivos agregados, errores)
        """
        sources = [
            (name, os.path.join(self.data_dir, name))
            for name in self.DATA_FILES
            if os.path.exists(os.path.join(self.data_dir, name))
        ]
        if not sources:
            return 0, []

        errors = []
        added = 0
        try:
            with zipfile.ZipFile(zip_path, 'w', zipfile.ZIP_DEFLATED) as archive:
                for name, path in sources:
                    try:
                        archive.write(path, name)
                    except OSError as e:
                        errors.append(f"{name}: {e}")
                    else:
                        added += 1
        except (OSError, zipfile.BadZipFile) as e:
            errors.append(f"Error creando ZIP: {e}")
            added = 0

        if not added and os.path.exists(zip_path):
            os.remove(zip_path)
        return added, errors

    def create_backup(self, force: bool = False) -> Dict:
        """
        Crea el ZIP del día.

        Args:
            force: Recrearlo aunque ya exista

        Returns:
            {backup_path, success, message, files_added, errors}
        """
        result = BackupResult(backup_path=self.today_path())

        if self.has_today_backup() and not force:
            result.success = True
            result.message = 'Backup del día ya existe'
            return result.to_dict()

        result.files_added, result.errors = self._write_zip(result.backup_path)
        result.success = result.files_added > 0
        if result.success:
            size_kb = round(os.path.getsize(result.backup_path) / 1024, 2)
            result.message = f"Backup creado: {result.files_added} archivos ({size_kb} KB)"
            log.info("%s (%s)", result.message, os.path.basename(result.backup_path))
        else:
            result.message = 'No se encontraron archivos para respaldar'
        return result.to_dict()

    def rotate_backups(self) -> Dict:
        """
        Borra los backups que exceden MAX_BACKUPS.

        Returns:
            {deleted_count, remaining_count}
        """
        deleted = 0
        for name in self.list_backups()[self.MAX_BACKUPS:]:
            try:
                os.remove(os.path.join(self.backup_root, name))
            except OSError as e:
                log.error("No se pudo eliminar %s: %s", name, e)
                continue
            deleted += 1
            log.info("Backup antiguo eliminado: %s", name)
        return {'deleted_count': deleted, 'remaining_count': len(self.list_backups())}

    def run_daily_backup(self) -> Dict:
        return {'backup': self.create_backup(), 'rotation': self.rotate_backups()}

    def get_backup_status(self) -> Dict:
        """
        Returns:
            {total_backups, max_backups, backup_root, backups, today_exists}
        """
        backups = []
        for name in self.list_backups():
            path = os.path.join(self.backup_root, name)
            try:
                with zipfile.ZipFile(path) as archive:
                    files = len(archive.namelist())
            except zipfile.BadZipFile:
                files = 0
            size = os.path.getsize(path)
            backups.append({
                'filename': name,
                'date': parse_backup_date(name).strftime(DATE_FORMAT),
                'files': files,
                'size_bytes': size,
                'size_kb': round(size / 1024, 2),
            })

        return {
            'total_backups': len(backups),
            'max_backups': self.MAX_BACKUPS,
            'backup_root': self.backup_root,
            'backups': backups,
            'today_exists': self.has_today_backup(),
        }


def run_startup_backup(data_dir: str) -> Optional[Dict]:
    """
    Backup del día más rotación, al iniciar la app.
    Un fallo se registra y no impide el arranque.
    """
    try:
        result = BackupService(data_dir).run_daily_backup()
    except OSError:
        log.exception("No se pudo ejecutar el backup diario")
        return None

    if result['backup']['errors']:
        log.warning("Backup con errores: %s", result['backup']['errors'])
    return result
