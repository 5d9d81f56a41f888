from types import SimpleNamespace
from typing import Any, List, Optional


def kube_response(status_code: int, payload: Optional[Any] = None, text: str = ''):
    """Build a fake `requests.Response` good enough for `KubeClient`."""
    def _json():
        if payload is None:
            raise ValueError('no json body')
        return payload
    return SimpleNamespace(status_code=status_code, json=_json, text=text)


def kube_status(code: int, reason: str, message: str = ''):
    return kube_response(code, {
        'kind': 'Status',
        'apiVersion': 'v1',
        'status': 'Failure',
        'reason': reason,
        'message': message or reason,
        'code': code,
    })


class FakeSession:
    """Records requests and replays queued responses (or raises exceptions)."""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.requests: List[dict] = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.requests.append({'method': method, 'url': url, **kwargs})
        if not self.responses:
            raise AssertionError(f'unexpected request {method} {url}')
        res = self.responses.pop(0)
        if isinstance(res, BaseException):
            raise res
        if callable(res):
            return res()
        return res

    def close(self):
        self.closed = True
