"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from collections.abc import Generator  # noqa: TC003
from typing import Annotated

from fastapi import Depends, Header

from unireg.api.events import EventManager
from unireg.notifier import Outbox
from unireg.state_store import StateStore
from unireg.workflow import Actor, RegistrationWorkflow

# Global StateStore instance (initialized on app startup)
_state_store: StateStore | None = None


def init_state_store(db_path: str = "unireg.db") -> StateStore:
    """Initialize the global StateStore instance."""
    global _state_store  # noqa: PLW0603
    _state_store = StateStore(db_path)
    return _state_store


def close_state_store() -> None:
    """Close the global StateStore instance."""
    global _state_store  # noqa: PLW0603
    if _state_store is not None:
        _state_store.close()
        _state_store = None


def get_state_store() -> Generator[StateStore, None, None]:
    """Dependency that provides the StateStore instance."""
    if _state_store is None:
        raise RuntimeError("StateStore not initialized. Call init_state_store() first.")
    yield _state_store


StateStoreDep = Annotated[StateStore, Depends(get_state_store)]

# Global RegistrationWorkflow instance
_workflow: RegistrationWorkflow | None = None


def init_workflow(workflow: RegistrationWorkflow) -> None:
    """Initialize the global RegistrationWorkflow instance."""
    global _workflow  # noqa: PLW0603
    _workflow = workflow


def close_workflow() -> None:
    """Close the global RegistrationWorkflow instance."""
    global _workflow  # noqa: PLW0603
    _workflow = None


def get_workflow() -> Generator[RegistrationWorkflow, None, None]:
    """Dependency that provides the RegistrationWorkflow instance."""
    if _workflow is None:
        raise RuntimeError("Workflow not initialized. Call init_workflow() first.")
    yield _workflow


WorkflowDep = Annotated[RegistrationWorkflow, Depends(get_workflow)]

# Global Outbox instance
_outbox: Outbox | None = None


def init_outbox(outbox: Outbox) -> None:
    """Initialize the global Outbox instance."""
    global _outbox  # noqa: PLW0603
    _outbox = outbox


def close_outbox() -> None:
    """Close the global Outbox and its mailer."""
    global _outbox  # noqa: PLW0603
    if _outbox is not None:
        _outbox.mailer.close()
        _outbox = None


def get_outbox() -> Generator[Outbox, None, None]:
    """Dependency that provides the Outbox instance."""
    if _outbox is None:
        raise RuntimeError("Outbox not initialized. Call init_outbox() first.")
    yield _outbox


OutboxDep = Annotated[Outbox, Depends(get_outbox)]

# Global EventManager instance
_event_manager: EventManager | None = None


def init_event_manager() -> EventManager:
    """Initialize the global EventManager instance."""
    global _event_manager  # noqa: PLW0603
    _event_manager = EventManager()
    return _event_manager


def get_event_manager() -> Generator[EventManager, None, None]:
    """Dependency that provides the EventManager instance."""
    if _event_manager is None:
        raise RuntimeError("EventManager not initialized. Call init_event_manager() first.")
    yield _event_manager


EventManagerDep = Annotated[EventManager, Depends(get_event_manager)]


def get_current_actor(
    store: StateStoreDep,
    x_user_id: Annotated[str | None, Header()] = None,
) -> Actor | None:
    """Resolve the acting user from the ``X-User-Id`` header.

    Returns None (no session) when the header is missing or names no user.
    """
    if not x_user_id:
        return None
    user = store.find_user(x_user_id)
    if user is None:
        return None
    return Actor(id=user.id, role=user.user_role)


ActorDep = Annotated[Actor | None, Depends(get_current_actor)]
