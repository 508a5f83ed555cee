# =============================================================================
# File: singlewindow/infra/event_registry.py
# Description: Auto-registration decorator for domain events, used to
#              rebuild typed events from journal dictionaries
# =============================================================================

import threading
from typing import Any, Dict, Optional, Set, Type

from pydantic import BaseModel

from singlewindow.config.logging_config import get_logger

log = get_logger("singlewindow.event_registry")

# Thread-safe lock for registry access
_REGISTRY_LOCK = threading.Lock()

# event_type -> model class
_REGISTERED_EVENTS: Dict[str, Type[BaseModel]] = {}

# category -> event types
_CATEGORY_EVENTS: Dict[str, Set[str]] = {}


def domain_event(*, category: str = "domain"):
    """
    Decorator registering a domain event class under its `event_type`.

    Usage:
        @domain_event(category="guarantee")
        class GuaranteeReserved(BaseEvent):
            event_type: Literal["GuaranteeReserved"] = "GuaranteeReserved"
            guarantee_id: str
            amount: Decimal
    """

    def decorator(event_class: Type[BaseModel]) -> Type[BaseModel]:
        if not issubclass(event_class, BaseModel):
            raise TypeError(
                f"@domain_event can only be applied to Pydantic BaseModel classes. "
                f"{event_class.__name__} is not a BaseModel."
            )

        event_type = None
        field_info = event_class.model_fields.get('event_type')
        if field_info is not None and isinstance(field_info.default, str):
            event_type = field_info.default
        if not event_type:
            event_type = event_class.__name__

        with _REGISTRY_LOCK:
            existing = _REGISTERED_EVENTS.get(event_type)
            if existing is not None and existing is not event_class:
                log.warning(
                    f"Event type '{event_type}' collision: "
                    f"already registered by {existing.__module__}.{existing.__name__}, "
                    f"now registering {event_class.__module__}.{event_class.__name__}"
                )
            _REGISTERED_EVENTS[event_type] = event_class
            _CATEGORY_EVENTS.setdefault(category, set()).add(event_type)

        return event_class

    return decorator


# =============================================================================
# Registry Access Functions
# =============================================================================

def get_event_class(event_type: str) -> Optional[Type[BaseModel]]:
    return _REGISTERED_EVENTS.get(event_type)


def get_category_events(category: str) -> Set[str]:
    """All event types registered under a category (e.g. "guarantee")."""
    return _CATEGORY_EVENTS.get(category, set()).copy()


def event_from_dict(data: Dict[str, Any]) -> BaseModel:
    """
    Rebuild a typed event from its serialized form.

    Raises:
        KeyError: event_type missing or not registered
    """
    event_type = data["event_type"]
    event_class = get_event_class(event_type)
    if event_class is None:
        raise KeyError(f"Unknown event type: {event_type}")
    return event_class.model_validate(data)


# =============================================================================
# EOF
# =============================================================================
