"""Gateway domain for access to the remote catalog store."""

from biodiversityhub.gateway.base import (
    DataGateway,
    GatewayError,
    RecordNotFoundError,
    SessionRequiredError,
)
from biodiversityhub.gateway.memory import InMemoryGateway
from biodiversityhub.gateway.supabase import SupabaseGateway

__all__ = [
    "DataGateway",
    "GatewayError",
    "InMemoryGateway",
    "RecordNotFoundError",
    "SessionRequiredError",
    "SupabaseGateway",
]
