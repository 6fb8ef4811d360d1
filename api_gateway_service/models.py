"""Domain models for the API Gateway Service.

All models are frozen: route rules and backend descriptors are built once at
startup, identities and outbound requests are built once per request.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

# Header pairs exactly as they were on the wire, in order, repeats kept
RawHeaders = tuple[tuple[bytes, bytes], ...]


class RuleKind(str, Enum):
    LITERAL = "literal"
    PREFIX = "prefix"


class BackendDescriptor(BaseModel):
    """A backend service the gateway forwards to."""

    model_config = ConfigDict(frozen=True)

    name: str
    base_url: str
    docs_url: str


class Identity(BaseModel):
    """Caller identity derived from a verified bearer token."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: str | None = None


class RouteRule(BaseModel):
    """Maps an inbound path pattern to a backend and an auth requirement.

    Literal rules match one method and one exact path. Prefix rules match any
    method on the prefix itself or anything below it.
    """

    model_config = ConfigDict(frozen=True)

    kind: RuleKind
    pattern: str
    backend: str
    requires_auth: bool
    method: str | None = None


class RouteMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule: RouteRule
    backend: BackendDescriptor

    @property
    def requires_auth(self) -> bool:
        return self.rule.requires_auth


class OutboundRequest(BaseModel):
    """Immutable description of the request sent to a backend."""

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    headers: RawHeaders
    content: bytes = b""
    backend: str


class UpstreamResponse(BaseModel):
    """Fully buffered backend response relayed to the caller."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    headers: RawHeaders
    content: bytes = b""
