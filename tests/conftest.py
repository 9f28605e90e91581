from __future__ import annotations

import pytest

from switchboard.core.accounts import build_accounts
from switchboard.core.config.models import SwitchboardConfig
from tests.helpers.fakes import FakeClientFactory, FakeHttp, FakePushRegistration, _L


@pytest.fixture
def cfg(tmp_path):
    """
    In-memory store, logs and error JSONL under tmp_path.
    """
    return SwitchboardConfig.model_validate(
        {
            "storage": {"backend": "memory"},
            "logging": {"log_dir": str(tmp_path / "logs")},
        }
    )


@pytest.fixture
def clients():
    return FakeClientFactory()


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def push_registration():
    return FakePushRegistration()


@pytest.fixture
def accounts(cfg, clients, http, push_registration):
    return build_accounts(cfg, client_factory=clients, push_registration=push_registration, logger=_L(), http_get=http)
