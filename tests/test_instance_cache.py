from __future__ import annotations

import asyncio

from switchboard.core.instances import InstanceCache, InstanceRecord, without_protocol
from switchboard.core.storage import MemoryStore
from tests.helpers.fakes import FakeAccountClient, FakeHttp, FakeResponse, _L


def _mk_cache(http=None, store=None):  # noqa: ANN001
    return InstanceCache(store or MemoryStore(), servers_key="servers", nodes_key="nodes", logger=_L(), http_get=http or FakeHttp())


def test_without_protocol():
    assert without_protocol("https://example.social") == "example.social"
    assert without_protocol("example.social/") == "example.social"
    assert without_protocol("") == ""


def test_refresh_instance_stores_record_and_persists():
    store = MemoryStore()
    cache = _mk_cache(store=store)
    client = FakeAccountClient(instance={"uri": "https://example.social", "version": "4.2.0", "configuration": {"statuses": {"max_characters": 1000}}})

    rec = asyncio.run(cache.refresh_instance(client, "s1"))
    assert rec is not None
    assert cache.get("s1").max_characters == 1000
    assert store.get("servers")["s1"]["uri"] == "https://example.social"
    # uri without account_domain still gives the web domain
    assert cache.domain_for_server("s1") == "example.social"


def test_refresh_instance_failure_keeps_cached_record():
    cache = _mk_cache()
    cache.set("s1", InstanceRecord(uri="s1", account_domain="example.social"))
    client = FakeAccountClient()
    client.fail_instance = True

    assert asyncio.run(cache.refresh_instance(client, "s1")) is None
    assert cache.get("s1").account_domain == "example.social"


def test_domain_for_server_unknown_falls_back_to_server():
    assert _mk_cache().domain_for_server("api.example") == "api.example"


def test_refresh_node_info_success_and_failure():
    http = FakeHttp(responses={"https://s1/nodeinfo/2.0": FakeResponse({"software": {"name": "gotosocial"}})})
    cache = _mk_cache(http=http)

    info = asyncio.run(cache.refresh_node_info("s1"))
    assert info == {"software": {"name": "gotosocial"}}
    assert cache.node_info("s1") == info

    # unreachable server: previous value kept, no exception
    http.responses.clear()
    assert asyncio.run(cache.refresh_node_info("s1")) is None
    assert cache.node_info("s1") == info

    http.responses["https://s2/nodeinfo/2.0"] = FakeResponse(status_code=500)
    assert asyncio.run(cache.refresh_node_info("s2")) is None
    assert cache.node_info("s2") is None


def test_delete_evicts_record():
    cache = _mk_cache()
    cache.set("s1", InstanceRecord(uri="s1"))
    assert cache.delete("s1") is True
    assert cache.get("s1") is None
    assert cache.delete("s1") is False


def test_servers_lists_cached_hosts():
    cache = _mk_cache()
    cache.set("s1", InstanceRecord(uri="s1"))
    cache.set("s2", InstanceRecord(uri="s2"))
    assert cache.servers() == ["s1", "s2"]
