"""Dependency injection for FastAPI endpoints"""

import uuid

from fastapi import Header, Request
from agency_billing.infrastructure.clients.events import EventsClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_agency_id(x_agency_id: uuid.UUID = Header(..., alias="X-Agency-ID")) -> uuid.UUID:
    """Tenant resolved by the upstream authorization layer"""
    return x_agency_id


def get_events_client() -> EventsClient:
    """Provide payment events webhook client instance"""
    return EventsClient()
