"""Pytest configuration helpers for test collection.

Ensure the project root is on sys.path so tests can import the package
without requiring PYTHONPATH to be set externally.
"""
import sys
from pathlib import Path

import pytest


def pytest_configure(config):
    # Insert repo root (one level up from tests/) to sys.path
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))


@pytest.fixture
def no_wait_backoff():
    from crdstore_lib.retry import BackoffPolicy
    return BackoffPolicy(max_tries=7, initial_interval=0, max_interval=0, jitter=0)


@pytest.fixture
def control_plane():
    from crdstore_lib.kube.memory_client import MemoryControlPlane
    return MemoryControlPlane()


@pytest.fixture
def storage(control_plane, no_wait_backoff):
    from crdstore_lib.storage import CRDStorage, StoreConfig
    s = CRDStorage(StoreConfig(client=control_plane, name='test-storage', namespace='test-ns', backoff=no_wait_backoff))
    s.boot(None)
    return s
