import json
import os

import pytest

from inventario.models import MAX_ACTIVITIES
from inventario.repositories import DocumentRepository
from inventario.repositories.document_repository import empty_document


def test_new_repository_creates_empty_document(tmp_path):
    repo = DocumentRepository(str(tmp_path / 'data'))

    assert os.path.exists(repo.file_path)
    assert repo.read_document() == empty_document()


def test_corrupt_file_reads_as_empty(tmp_path):
    repo = DocumentRepository(str(tmp_path))
    with open(repo.file_path, 'w', encoding='utf-8') as f:
        f.write('{no es json')

    assert repo.read_document() == empty_document()


def test_corrupt_file_is_kept_before_next_write(tmp_path):
    repo = DocumentRepository(str(tmp_path))
    with open(repo.file_path, 'w', encoding='utf-8') as f:
        f.write('{no es json')

    repo.mutate(lambda draft: draft['clients'].append({'id': 'c1'}))

    with open(repo.file_path + '.corrupt', encoding='utf-8') as f:
        assert f.read() == '{no es json'
    assert repo.read_document()['clients'] == [{'id': 'c1'}]


def test_missing_sections_are_filled_and_unknown_keys_kept(tmp_path):
    repo = DocumentRepository(str(tmp_path))
    with open(repo.file_path, 'w', encoding='utf-8') as f:
        json.dump({'products': [{'id': 'p1'}], 'orders': 'roto', 'extra': {'a': 1}}, f)

    doc = repo.read_document()

    assert doc['products'] == [{'id': 'p1'}]
    assert doc['orders'] == []
    assert doc['debts'] == []
    assert doc['extra'] == {'a': 1}
    assert doc['pricing'] == {'precioCaja': 0, 'preciosPorComuna': {}}


def test_mutate_persists_draft(tmp_path):
    repo = DocumentRepository(str(tmp_path))

    def add_product(draft):
        draft['products'].append({'id': 'p1', 'name': 'Tomates'})

    result = repo.mutate(add_product)

    assert result['products'] == [{'id': 'p1', 'name': 'Tomates'}]
    assert DocumentRepository(str(tmp_path)).read_document()['products'] == result['products']


def test_failed_mutation_leaves_file_untouched(tmp_path):
    repo = DocumentRepository(str(tmp_path))
    repo.mutate(lambda draft: draft['clients'].append({'id': 'c1'}))
    with open(repo.file_path, 'rb') as f:
        before = f.read()

    def broken(draft):
        draft['clients'].clear()
        raise RuntimeError('falla a mitad de camino')

    with pytest.raises(RuntimeError):
        repo.mutate(broken)

    with open(repo.file_path, 'rb') as f:
        assert f.read() == before
    assert [name for name in os.listdir(str(tmp_path)) if name.endswith('.tmp')] == []


def test_file_is_utf8_json(tmp_path):
    repo = DocumentRepository(str(tmp_path))
    repo.mutate(lambda draft: draft['clients'].append({'id': 'c1', 'comuna': 'Viña del Mar'}))

    with open(repo.file_path, encoding='utf-8') as f:
        text = f.read()
    assert 'Viña del Mar' in text
    assert json.loads(text)['clients'][0]['comuna'] == 'Viña del Mar'


def test_activity_log_is_capped(container):
    def record_many(draft):
        for n in range(MAX_ACTIVITIES + 5):
            container.activity_service.record(draft, f'Evento {n}', 'detalle')

    container.document_repo.mutate(record_many)

    activities = container.document_repo.read_document()['activities']
    assert len(activities) == MAX_ACTIVITIES
    assert activities[0]['title'] == f'Evento {MAX_ACTIVITIES + 4}'
    assert activities[-1]['title'] == 'Evento 5'
