import pytest
from fastapi.testclient import TestClient

from crdstore_lib.config.config import ServerConfig
from crdstore_lib.errors import BackendError, ConflictError, DeadlineExceededError
from crdstore_lib.kube.memory_client import MemoryControlPlane
from crdstore_lib.main import Config, create_app


def _app(control_plane, **cfg):
    server_cfg = ServerConfig(backend='memory', name='api', namespace='api-ns', **cfg)
    return create_app(Config(server_config=server_cfg, control_plane=control_plane))


@pytest.fixture
def cp():
    return MemoryControlPlane()


@pytest.fixture
def client(cp):
    with TestClient(_app(cp)) as c:
        yield c


def test_startup_boots_storage(client, cp):
    assert cp.has_namespace('api-ns')
    assert cp.get_document(None, 'api-ns', 'api').mapping() == {}


def test_health(client):
    r = client.get('/api/health')
    assert r.status_code == 200
    body = r.json()
    assert body['status'] == 'ok'
    assert body['backend'] == 'memory'


def test_put_search_exists_delete(client):
    r = client.put('/api/v1/kv', json={'key': '/foo/bar', 'value': 'baz'})
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'key': '/foo/bar'}

    assert client.get('/api/v1/kv/search', params={'key': '/foo/bar'}).json() == {'key': '/foo/bar', 'value': 'baz'}
    assert client.get('/api/v1/kv/exists', params={'key': '/foo/bar'}).json()['exists'] is True

    r = client.delete('/api/v1/kv', params={'key': '/foo/bar'})
    assert r.status_code == 200
    assert client.get('/api/v1/kv/exists', params={'key': '/foo/bar'}).json()['exists'] is False


def test_search_missing_is_404(client):
    r = client.get('/api/v1/kv/search', params={'key': '/missing'})
    assert r.status_code == 404
    assert r.json()['error'] == 'not_found'
    assert '/missing' in r.json()['message']


def test_list(client):
    for k, v in {'/a': '1', '/a/b': '2', '/ab': '3'}.items():
        client.put('/api/v1/kv', json={'key': k, 'value': v})
    assert client.get('/api/v1/kv/list', params={'prefix': '/a'}).json() == [{'key': 'b', 'value': '2'}]
    everything = client.get('/api/v1/kv/list').json()
    assert sorted(i['key'] for i in everything) == ['/a', '/a/b', '/ab']


def test_invalid_key_is_400(client):
    r = client.get('/api/v1/kv/exists', params={'key': '/a//b'})
    assert r.status_code == 400
    assert r.json()['error'] == 'invalid_key'


def test_missing_payload_field_is_422(client):
    r = client.put('/api/v1/kv', json={'key': '/a'})
    assert r.status_code == 422


@pytest.mark.parametrize('error,status,code', [
    (ConflictError('modified'), 409, 'conflict'),
    (BackendError('etcd down', status_code=500), 502, 'backend_error'),
    (DeadlineExceededError('too slow'), 504, 'deadline_exceeded'),
])
def test_store_errors_map_to_status(client, cp, error, status, code):
    cp.fail_next('update_document', error)
    r = client.put('/api/v1/kv', json={'key': '/a', 'value': '1'})
    assert r.status_code == status
    assert r.json()['error'] == code


def test_requests_before_boot_are_503(cp):
    app = create_app(Config(
        server_config=ServerConfig(backend='memory'),
        control_plane=cp,
        boot_on_startup=False,
    ))
    with TestClient(app) as c:
        r = c.get('/api/v1/kv/exists', params={'key': '/a'})
    assert r.status_code == 503
    assert not cp.has_namespace('crdstore')


def test_ensure_crd_on_startup(cp):
    from crdstore_lib.config.config import BootConfig
    app = _app(cp, boot=BootConfig(ensure_crd=True))
    with TestClient(app):
        pass
    assert cp.resource_types() == ['storageconfigs.core.giantswarm.io']


def test_boot_failure_aborts_startup(cp):
    from crdstore_lib.config.config import BootConfig
    cp.fail_next('create_namespace', BackendError('forbidden', status_code=403))
    app = _app(cp, boot=BootConfig(max_tries=1))
    with pytest.raises(BackendError):
        with TestClient(app):
            pass


class _ClosingControlPlane(MemoryControlPlane):
    def __init__(self):
        super().__init__()
        self.closed = 0

    def close(self):
        self.closed += 1


def test_control_plane_closed_on_shutdown():
    cp = _ClosingControlPlane()
    with TestClient(_app(cp)):
        assert cp.closed == 0
    assert cp.closed == 1


def test_control_plane_closed_when_boot_fails():
    from crdstore_lib.config.config import BootConfig
    cp = _ClosingControlPlane()
    cp.fail_next('create_namespace', BackendError('forbidden', status_code=403))
    app = _app(cp, boot=BootConfig(max_tries=1))
    with pytest.raises(BackendError):
        with TestClient(app):
            pass
    assert cp.closed == 1


def test_brotli_enabled_by_feature_flag(cp):
    app = _app(cp, feature_flags={'use_brotli': True})
    with TestClient(app) as c:
        for i in range(40):
            c.put('/api/v1/kv', json={'key': f'/k/{i}', 'value': 'x' * 30})
        r = c.get('/api/v1/kv/list', params={'prefix': '/k'}, headers={'Accept-Encoding': 'br'})
    assert r.status_code == 200
    assert r.headers.get('content-encoding') == 'br'
    assert len(r.json()) == 40
