import pytest

from crdstore_lib.context import Context
from crdstore_lib.errors import (
    BackendError,
    CancelledError,
    ConflictError,
    InvalidConfigError,
    InvalidKeyError,
    NotFoundError,
)
from crdstore_lib.keys import KV
from crdstore_lib.kube.document import StorageDocument
from crdstore_lib.kube.memory_client import MemoryControlPlane
from crdstore_lib.storage import CRDStorage, KeyValueStorageProtocol, StoreConfig


def test_implements_protocol(storage):
    assert isinstance(storage, KeyValueStorageProtocol)


@pytest.mark.parametrize('kwargs', [
    {'client': None, 'name': 'n', 'namespace': 'ns'},
    {'client': MemoryControlPlane(), 'name': '', 'namespace': 'ns'},
    {'client': MemoryControlPlane(), 'name': 'n', 'namespace': ''},
])
def test_invalid_config(kwargs):
    with pytest.raises(InvalidConfigError):
        CRDStorage(StoreConfig(**kwargs))


def test_missing_key_does_not_exist(storage):
    assert storage.exists(None, '/foo') is False
    with pytest.raises(NotFoundError) as ei:
        storage.search(None, '/foo')
    assert '/foo' in str(ei.value)


def test_put_then_search(storage):
    storage.put(None, '/foo/bar', 'baz')
    assert storage.search(None, '/foo/bar') == 'baz'
    assert storage.exists(None, '/foo/bar') is True


def test_put_overwrites(storage):
    storage.put(None, '/k', 'v1')
    storage.put(None, '/k', 'v2')
    assert storage.search(None, '/k') == 'v2'


def test_put_is_idempotent(storage, control_plane):
    storage.put(None, '/k', 'v')
    storage.put(None, '/k', 'v')
    doc = control_plane.get_document(None, 'test-ns', 'test-storage')
    assert doc.mapping() == {'/k': 'v'}


def test_keys_are_sanitized(storage):
    storage.put(None, 'foo/', 'bar')
    assert storage.search(None, '/foo') == 'bar'
    assert storage.exists(None, 'foo') is True


def test_invalid_key(storage):
    with pytest.raises(InvalidKeyError):
        storage.put(None, '', 'x')


def test_double_separator_key_is_rejected_everywhere(storage, control_plane):
    storage.put(None, '/a/b', '1')
    with pytest.raises(InvalidKeyError):
        storage.put(None, '//', 'x')
    with pytest.raises(InvalidKeyError):
        storage.search(None, '//')
    with pytest.raises(InvalidKeyError):
        storage.list(None, '//')
    doc = control_plane.get_document(Context.background(), 'test-ns', 'test-storage')
    assert doc.mapping() == {'/a/b': '1'}


def test_delete(storage):
    storage.put(None, '/k', 'v')
    storage.delete(None, '/k')
    assert storage.exists(None, '/k') is False


def test_delete_missing_key_is_noop(storage, control_plane):
    storage.put(None, '/other', 'v')
    before = control_plane.get_document(None, 'test-ns', 'test-storage').resource_version
    storage.delete(None, '/missing')
    after = control_plane.get_document(None, 'test-ns', 'test-storage')
    assert after.resource_version == before
    assert after.mapping() == {'/other': 'v'}


def test_list_root_returns_everything_verbatim(storage):
    pairs = {'/a': '1', '/a/b': '2', '/ab': '3'}
    for k, v in pairs.items():
        storage.put(None, k, v)
    assert sorted(storage.list(None, '/')) == sorted(KV(k, v) for k, v in pairs.items())


def test_list_prefix(storage):
    for k, v in {'/a': '1', '/a/b': '2', '/ab': '3'}.items():
        storage.put(None, k, v)
    assert storage.list(None, '/a') == [KV('b', '2')]
    # a trailing separator on the prefix is sanitized away
    assert storage.list(None, '/a/') == [KV('b', '2')]


def test_list_empty(storage):
    assert storage.list(None, '/nothing') == []


def test_operations_before_boot_fail_not_found(control_plane, no_wait_backoff):
    s = CRDStorage(StoreConfig(client=control_plane, name='x', namespace='y', backoff=no_wait_backoff))
    with pytest.raises(NotFoundError):
        s.exists(None, '/a')
    with pytest.raises(NotFoundError):
        s.put(None, '/a', 'b')


def test_absent_mapping_is_treated_as_empty(storage, control_plane):
    doc = StorageDocument(name='test-storage', namespace='test-ns', data=None)
    control_plane.replace_raw(doc)
    assert storage.exists(None, '/a') is False
    assert storage.list(None, '/') == []
    storage.put(None, '/a', '1')
    assert storage.search(None, '/a') == '1'


def test_put_conflict_is_not_retried(storage, control_plane):
    control_plane.fail_next('update_document', ConflictError('modified'))
    with pytest.raises(ConflictError) as ei:
        storage.put(None, '/k', 'v')
    assert 'putting key=/k' in str(ei.value)
    assert control_plane.calls.count('update_document') == 1
    assert storage.exists(None, '/k') is False


def test_stale_write_conflicts(storage, control_plane):
    # Another writer lands between our fetch and our write.
    real_get = control_plane.get_document

    def racing_get(ctx, namespace, name):
        doc = real_get(ctx, namespace, name)
        other = real_get(ctx, namespace, name)
        other.data['/theirs'] = 'x'
        control_plane.update_document(ctx, other)
        return doc

    control_plane.get_document = racing_get
    with pytest.raises(ConflictError):
        storage.put(None, '/mine', 'y')
    control_plane.get_document = real_get
    assert storage.search(None, '/theirs') == 'x'
    assert storage.exists(None, '/mine') is False


def test_sequential_writers_to_different_keys_both_survive(control_plane, no_wait_backoff):
    a = CRDStorage(StoreConfig(client=control_plane, name='d', namespace='ns', backoff=no_wait_backoff))
    b = CRDStorage(StoreConfig(client=control_plane, name='d', namespace='ns', backoff=no_wait_backoff))
    a.boot(None)
    b.boot(None)
    a.put(None, '/a', '1')
    b.put(None, '/b', '2')
    assert sorted(a.list(None, '/')) == [KV('/a', '1'), KV('/b', '2')]


def test_backend_error_on_fetch_carries_context(storage, control_plane):
    control_plane.fail_next('get_document', BackendError('connection refused'))
    with pytest.raises(BackendError) as ei:
        storage.search(None, '/k')
    assert 'searching for key=/k' in str(ei.value)
    assert 'connection refused' in str(ei.value)


def test_cancelled_context_aborts_mutation(storage, control_plane):
    ctx = Context()
    ctx.cancel()
    with pytest.raises(CancelledError):
        storage.put(ctx, '/k', 'v')
    assert control_plane.calls.count('update_document') == 0
    assert storage.exists(None, '/k') is False
