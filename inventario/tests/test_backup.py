import json
import os
import zipfile
from datetime import date

from inventario.services import BackupService, run_startup_backup

TODAY = date(2024, 5, 10)


def _service(data_dir, day=TODAY):
    return BackupService(str(data_dir), today=lambda: day)


def _write_db(data_dir):
    with open(os.path.join(str(data_dir), 'db.json'), 'w', encoding='utf-8') as f:
        json.dump({'products': []}, f)


def test_create_backup(tmp_path):
    _write_db(tmp_path)
    service = _service(tmp_path)

    result = service.create_backup()

    assert result['success'] is True
    assert result['files_added'] == 1
    assert os.path.basename(result['backup_path']) == 'backup_2024-05-10.zip'
    with zipfile.ZipFile(result['backup_path']) as zf:
        assert zf.namelist() == ['db.json']


def test_existing_backup_is_not_recreated(tmp_path):
    _write_db(tmp_path)
    service = _service(tmp_path)
    service.create_backup()

    again = service.create_backup()
    assert again['message'] == 'Backup del día ya existe'
    assert again['files_added'] == 0

    forced = service.create_backup(force=True)
    assert forced['files_added'] == 1


def test_no_data_files(tmp_path):
    result = _service(tmp_path).create_backup()

    assert result['success'] is False
    assert result['message'] == 'No se encontraron archivos para respaldar'
    assert not os.path.exists(result['backup_path'])


def test_rotation_keeps_most_recent(tmp_path):
    service = _service(tmp_path)
    for day in range(1, 10):
        with zipfile.ZipFile(os.path.join(service.backup_root, f'backup_2024-05-0{day}.zip'), 'w') as zf:
            zf.writestr('db.json', '{}')
    # nombres con otro formato no cuentan
    open(os.path.join(service.backup_root, 'backup_manual.zip'), 'w').close()

    rotation = service.rotate_backups()

    assert rotation == {'deleted_count': 2, 'remaining_count': BackupService.MAX_BACKUPS}
    remaining = sorted(os.listdir(service.backup_root))
    assert 'backup_2024-05-01.zip' not in remaining
    assert 'backup_2024-05-02.zip' not in remaining
    assert 'backup_manual.zip' in remaining


def test_backup_status(tmp_path):
    _write_db(tmp_path)
    service = _service(tmp_path)
    service.run_daily_backup()

    status = service.get_backup_status()

    assert status['total_backups'] == 1
    assert status['today_exists'] is True
    assert status['backups'][0]['date'] == '2024-05-10'


def test_startup_backup(tmp_path):
    _write_db(tmp_path)

    result = run_startup_backup(str(tmp_path))

    assert result['backup']['success'] is True
    assert result['rotation']['remaining_count'] == 1
