from __future__ import annotations

import asyncio
import json
import os

from switchboard.core.accounts import build_accounts
from switchboard.core.config.models import SwitchboardConfig
from switchboard.core.identity import ServerCredential
from switchboard.core.instances import InstanceRecord
from switchboard.core.storage import JsonFileStore
from tests.helpers.fakes import FakeAccountClient, FakeClientFactory, FakeHttp, FakeOAuthLoader, FakeOAuthClient, _L


def _json_cfg(tmp_path, **logging):  # noqa: ANN001
    return SwitchboardConfig.model_validate(
        {
            "storage": {"backend": "json", "path": str(tmp_path / "data" / "store.json")},
            "logging": {"log_dir": str(tmp_path / "logs"), **logging},
        }
    )


def test_state_survives_restart_with_json_store(tmp_path):
    cfg = _json_cfg(tmp_path)
    clients = FakeClientFactory()
    clients.add("s1", FakeAccountClient(profile={"id": "1", "acct": "alice"}, instance={"uri": "s1", "account_domain": "example.social"}))

    accounts = build_accounts(cfg, client_factory=clients, logger=_L(), http_get=FakeHttp())
    assert isinstance(accounts.store, JsonFileStore)

    async def run():
        await accounts.login.login_to(ServerCredential(server="s1", token="t1"))
        await accounts.drain()

    asyncio.run(run())

    restarted = build_accounts(cfg, client_factory=clients, logger=_L(), http_get=FakeHttp())
    # the registry is process state; pointer and instance cache are persisted
    assert len(restarted.registry) == 0
    assert restarted.pointer.get() == "alice@example.social"
    assert restarted.instances.get("s1").account_domain == "example.social"


def test_events_jsonl_written_and_redacted(tmp_path):
    cfg = _json_cfg(tmp_path, events_jsonl=True)
    accounts = build_accounts(cfg, client_factory=FakeClientFactory(), logger=_L(), http_get=FakeHttp())
    accounts.pointer.set("alice@s1")

    path = tmp_path / "logs" / "events" / "account_events.jsonl"
    rows = [json.loads(x) for x in path.read_text(encoding="utf-8").splitlines()]
    assert rows[-1]["event_type"] == "accounts.pointer.changed"
    assert rows[-1]["payload"]["to"] == "alice@s1"


def test_oauth_adapter_needs_loader_and_agent_factory(cfg):
    log = _L()
    accounts = build_accounts(cfg, client_factory=FakeClientFactory(), oauth_loader=FakeOAuthLoader(FakeOAuthClient()), logger=log, http_get=FakeHttp())
    assert accounts.oauth is None
    assert any("OAuth" in m for m in log.messages)


def test_error_log_disabled(tmp_path):
    cfg = _json_cfg(tmp_path, errors_jsonl=False)
    accounts = build_accounts(cfg, client_factory=FakeClientFactory(), logger=_L(), http_get=FakeHttp())
    assert accounts.error_reporter is None
    assert not os.path.exists(tmp_path / "logs" / "errors.jsonl")


def test_derived_flags_from_instance(accounts):
    accounts.state.set_public("s1", InstanceRecord(uri="s1", version="4.2.0+glitch"))
    assert accounts.state.is_glitch_edition is True
    assert accounts.state.current_web_domain == "s1"
    accounts.state.set_public("s2", InstanceRecord(uri="https://s2.example", version="4.2.0"))
    assert accounts.state.is_glitch_edition is False
    assert accounts.state.current_web_domain == "s2.example"


def test_require_login_publishes_signin_request(accounts):
    asked = []
    accounts.bus.subscribe("accounts.signin_required", lambda ev: asked.append(ev.payload))
    assert accounts.state.require_login() is False
    assert asked == [{"public_server": ""}]
