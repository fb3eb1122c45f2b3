from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from providers.factory import build_store
from providers.storage import ObjectStore
from reports.delegation import build_strategy
from reports.locator import LocatorResolver
from reports.service import ReportFileGateway


def build_gateway(settings, store: Optional[ObjectStore] = None) -> ReportFileGateway:
    """
    Composition root for the report file gateway.

    Resolver and strategy are built here, once, so malformed paths or an
    unknown strategy fail at startup rather than per request. The header
    strategy never touches the store, so none is built for it.
    """
    resolver = LocatorResolver.from_settings(settings)
    if store is None and settings.delegation.strategy != "header":
        store = build_store(settings)
    strategy = build_strategy(settings, store)
    return ReportFileGateway(resolver, strategy)


def init_gateway(app: FastAPI, settings, store: Optional[ObjectStore] = None) -> ReportFileGateway:
    """
    Called once during app lifespan. Attaches the gateway (and its store,
    for shutdown) onto app.state.
    """
    gateway = build_gateway(settings, store)
    app.state.gateway = gateway
    app.state.store = getattr(gateway.strategy, "store", None)
    return gateway
