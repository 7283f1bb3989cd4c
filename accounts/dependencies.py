"""Request-scoped dependencies for FastAPI routes."""

from dataclasses import dataclass

from fastapi import Request

UNKNOWN = "unknown"


@dataclass
class ClientInfo:
    """Audit metadata recorded with password reset requests."""

    ip_address: str
    user_agent: str


def get_client_info(request: Request) -> ClientInfo:
    """Extract caller IP and user agent. Missing values become 'unknown' so audit columns are never empty."""
    ip_address = request.client.host if request.client else ""
    return ClientInfo(
        ip_address=ip_address or UNKNOWN,
        user_agent=request.headers.get("User-Agent") or UNKNOWN,
    )
