from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Optional

from switchboard.core.accounts.login import LoginCoordinator, PreferenceCache
from switchboard.core.accounts.oauth import OAuthSessionAdapter
from switchboard.core.accounts.signout import SignOutCoordinator
from switchboard.core.clients.base import AgentFactory, ClientFactory, OAuthClientLoader, PushRegistration
from switchboard.core.config.models import SwitchboardConfig
from switchboard.core.error_reporter import ErrorReporter
from switchboard.core.events import EventBus
from switchboard.core.events.subscribers import EventJsonlSubscriber, LoggingSubscriber
from switchboard.core.identity import AccountState, ActivePointer, IdentityRegistry
from switchboard.core.instances import InstanceCache
from switchboard.core.logger import setup_logging
from switchboard.core.storage import JsonFileStore, KeyValueStore, MemoryStore
from switchboard.core.storage.scoped import ScopedStorageManager


@dataclass
class Accounts:
    config: SwitchboardConfig
    store: KeyValueStore
    bus: EventBus
    registry: IdentityRegistry
    pointer: ActivePointer
    instances: InstanceCache
    state: AccountState
    storage: ScopedStorageManager
    login: LoginCoordinator
    signout: SignOutCoordinator
    oauth: Optional[OAuthSessionAdapter]
    error_reporter: Optional[ErrorReporter]
    logger: Any

    async def drain(self) -> None:
        await self.login.drain()


def build_store(config: SwitchboardConfig, logger=None) -> KeyValueStore:
    if config.storage.backend == "memory":
        return MemoryStore()
    return JsonFileStore(config.storage.path, backup_keep=config.storage.backup_keep, logger=logger)


def build_accounts(
    config: Optional[SwitchboardConfig] = None,
    *,
    client_factory: ClientFactory,
    oauth_loader: Optional[OAuthClientLoader] = None,
    agent_factory: Optional[AgentFactory] = None,
    push_registration: Optional[PushRegistration] = None,
    logger=None,
    store: Optional[KeyValueStore] = None,
    http_get: Optional[Callable[..., Any]] = None,
) -> Accounts:
    cfg = config or SwitchboardConfig()
    log_cfg = cfg.logging
    if logger is None:
        logger = setup_logging(log_cfg.log_dir, level=log_cfg.level)

    error_reporter = ErrorReporter(path=os.path.join(log_cfg.log_dir, "errors.jsonl")) if log_cfg.errors_jsonl else None

    bus = EventBus(logger=logger, error_reporter=error_reporter)
    bus.subscribe("*", LoggingSubscriber(logger), priority=90)
    if log_cfg.events_jsonl:
        bus.subscribe("*", EventJsonlSubscriber(path=os.path.join(log_cfg.log_dir, "events", "account_events.jsonl")), priority=100)

    store = store if store is not None else build_store(cfg, logger)
    keys = cfg.storage_keys
    acc = cfg.accounts

    registry = IdentityRegistry(bus=bus, logger=logger)
    pointer = ActivePointer(store, keys.current_user_handle, bus=bus)
    instances = InstanceCache(
        store,
        servers_key=keys.servers,
        nodes_key=keys.nodes,
        bus=bus,
        logger=logger,
        error_reporter=error_reporter,
        http_get=http_get,
        node_info_path=acc.node_info_path,
        timeout_seconds=acc.node_info_timeout_seconds,
    )
    state = AccountState(registry=registry, pointer=pointer, instances=instances, bus=bus, default_post_chars_limit=acc.default_post_chars_limit)
    state.public_server = acc.default_server
    storage = ScopedStorageManager(store, state, bus=bus, logger=logger, anonymous_id=acc.anonymous_bucket_id)

    login = LoginCoordinator(
        state=state,
        client_factory=client_factory,
        preferences=PreferenceCache(),
        bus=bus,
        logger=logger,
        error_reporter=error_reporter,
        pwa_enabled=acc.pwa_enabled,
    )
    signout = SignOutCoordinator(
        state=state,
        storage=storage,
        login=login,
        store=store,
        notification_key=keys.notification,
        notification_policy_key=keys.notification_policy,
        push_registration=push_registration,
        pwa_enabled=acc.pwa_enabled,
        bus=bus,
        logger=logger,
        error_reporter=error_reporter,
    )

    oauth = None
    if oauth_loader is not None and agent_factory is not None:
        oauth = OAuthSessionAdapter(
            state=state,
            loader=oauth_loader,
            agent_factory=agent_factory,
            config=cfg.oauth,
            bus=bus,
            logger=logger,
            error_reporter=error_reporter,
        )
    elif oauth_loader is not None or agent_factory is not None:
        logger.warning("OAuth needs both a client loader and an agent factory; OAuth sign-in disabled")

    return Accounts(
        config=cfg,
        store=store,
        bus=bus,
        registry=registry,
        pointer=pointer,
        instances=instances,
        state=state,
        storage=storage,
        login=login,
        signout=signout,
        oauth=oauth,
        error_reporter=error_reporter,
        logger=logger,
    )
