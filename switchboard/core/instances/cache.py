from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlsplit

import requests
from pydantic import ValidationError

from switchboard.core.error_reporter import note_advisory_failure
from switchboard.core.events import EventBus, SourceSubsystem
from switchboard.core.instances.models import InstanceRecord
from switchboard.core.storage import KeyValueStore, PersistedValue


def without_protocol(uri: str) -> str:
    uri = str(uri or "").strip()
    if "://" in uri:
        return urlsplit(uri).netloc
    return uri.split("/", 1)[0]


class InstanceCache:
    """
    Per-server instance records and raw node-info documents, both persisted.

    Refreshes are best-effort: any failure leaves the previously cached value in place.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        servers_key: str,
        nodes_key: str,
        bus: Optional[EventBus] = None,
        logger=None,
        error_reporter=None,
        http_get: Optional[Callable[..., Any]] = None,
        node_info_path: str = "/nodeinfo/2.0",
        timeout_seconds: float = 5.0,
    ):
        self._instances = PersistedValue[Dict[str, Dict[str, Any]]](store, servers_key, {})
        self._nodes = PersistedValue[Dict[str, Dict[str, Any]]](store, nodes_key, {})
        self.bus = bus
        self.logger = logger
        self.error_reporter = error_reporter
        self.http_get = http_get or requests.get
        self.node_info_path = node_info_path
        self.timeout_seconds = float(timeout_seconds)

    # ---- instance records ----
    def get(self, server: str) -> Optional[InstanceRecord]:
        raw = self._instances.value.get(server)
        if raw is None:
            return None
        try:
            return InstanceRecord.model_validate(raw)
        except ValidationError:
            return None

    def set(self, server: str, record: InstanceRecord) -> None:
        self._instances.value[server] = record.model_dump(exclude_none=True)
        self._instances.commit()
        self._emit("accounts.instance.updated", server)

    def delete(self, server: str) -> bool:
        if server not in self._instances.value:
            return False
        del self._instances.value[server]
        self._instances.commit()
        self._emit("accounts.instance.evicted", server)
        return True

    def servers(self) -> List[str]:
        return list(self._instances.value.keys())

    @staticmethod
    def domain_for(record: InstanceRecord) -> str:
        return record.account_domain or without_protocol(record.uri)

    def domain_for_server(self, server: str) -> str:
        record = self.get(server)
        return self.domain_for(record) if record is not None else server

    async def refresh_instance(self, client: Any, server: str) -> Optional[InstanceRecord]:
        try:
            raw = await client.fetch_instance()
            record = raw if isinstance(raw, InstanceRecord) else InstanceRecord.model_validate(raw)
        except Exception as e:  # noqa: BLE001
            note_advisory_failure(e, subsystem="instances", logger=self.logger, error_reporter=self.error_reporter, context={"server": server})
            return None
        self.set(server, record)
        return record

    # ---- node info ----
    def node_info(self, server: str) -> Optional[Dict[str, Any]]:
        return self._nodes.value.get(server)

    async def refresh_node_info(self, server: str) -> Optional[Dict[str, Any]]:
        url = f"https://{server}{self.node_info_path}"
        try:
            resp = await asyncio.to_thread(self.http_get, url, timeout=self.timeout_seconds)
            resp.raise_for_status()
            info = resp.json()
            if not isinstance(info, dict):
                raise ValueError("node info is not an object")
        except Exception as e:  # noqa: BLE001
            note_advisory_failure(e, subsystem="nodeinfo", logger=self.logger, error_reporter=self.error_reporter, context={"server": server})
            return None
        self._nodes.value[server] = info
        self._nodes.commit()
        return info

    def _emit(self, event_type: str, server: str) -> None:
        if self.bus is not None:
            self.bus.emit(event_type, SourceSubsystem.instances, {"server": server})
