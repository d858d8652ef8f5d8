"""Fixtures for API route tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from fastapi.testclient import TestClient

from unireg.api.app import create_app
from unireg.api.dependencies import (
    get_event_manager,
    get_outbox,
    get_state_store,
    get_workflow,
)
from unireg.api.events import EventManager
from unireg.config import Settings
from unireg.workflow import RegistrationWorkflow

if TYPE_CHECKING:
    from fastapi import FastAPI

    from unireg.notifier import Outbox
    from unireg.state_store import StateStore


@pytest.fixture
def event_manager() -> EventManager:
    """Create an EventManager instance."""
    return EventManager()


@pytest.fixture
def api_workflow(
    store: StateStore, outbox: Outbox, event_manager: EventManager
) -> RegistrationWorkflow:
    """Workflow wired to the test store, outbox and event manager."""
    return RegistrationWorkflow(
        state_store=store,
        outbox=outbox,
        event_manager=event_manager,
        app_url="https://portal.test",
    )


@pytest.fixture
def app(
    store: StateStore,
    outbox: Outbox,
    event_manager: EventManager,
    api_workflow: RegistrationWorkflow,
) -> FastAPI:
    """Create the app with dependencies pointing at the test fixtures."""
    app = create_app(Settings(db_path=":memory:"))

    def override_get_state_store():
        yield store

    def override_get_workflow():
        yield api_workflow

    def override_get_outbox():
        yield outbox

    def override_get_event_manager():
        yield event_manager

    app.dependency_overrides[get_state_store] = override_get_state_store
    app.dependency_overrides[get_workflow] = override_get_workflow
    app.dependency_overrides[get_outbox] = override_get_outbox
    app.dependency_overrides[get_event_manager] = override_get_event_manager
    return app


@pytest.fixture
def client(app: FastAPI):
    """Create a test client."""
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client

