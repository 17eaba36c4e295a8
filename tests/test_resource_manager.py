import pytest

from core.ResourceManager import ResourceManager, ResourceStatus


def test_resource_is_read_once(tmp_path):
    path = tmp_path / 'conditions.csv'
    path.write_bytes(b'a,b\n1,2\n')
    manager = ResourceManager(str(tmp_path))
    assert manager.status('conditions.csv') is ResourceStatus.NOT_REGISTERED

    assert manager.get_resource('conditions.csv') == b'a,b\n1,2\n'
    assert manager.status('conditions.csv') is ResourceStatus.DOWNLOADED

    # later changes to the file are not seen until the cache is cleared
    path.write_bytes(b'a,b\n3,4\n')
    assert manager.get_resource('conditions.csv') == b'a,b\n1,2\n'
    manager.clear()
    assert manager.status('conditions.csv') is ResourceStatus.NOT_REGISTERED
    assert manager.get_resource('conditions.csv') == b'a,b\n3,4\n'


def test_register_with_explicit_path(tmp_path):
    other = tmp_path / 'elsewhere'
    other.mkdir()
    (other / 'blocks.csv').write_bytes(b'block\n1\n')
    manager = ResourceManager(str(tmp_path))
    manager.register('blocks', str(other / 'blocks.csv'))
    assert manager.status('blocks') is ResourceStatus.REGISTERED
    assert manager.get_resource('blocks') == b'block\n1\n'


def test_missing_resource(tmp_path):
    manager = ResourceManager(str(tmp_path))
    with pytest.raises(FileNotFoundError):
        manager.get_resource('missing.csv')
    assert manager.status('missing.csv') is ResourceStatus.REGISTERED
