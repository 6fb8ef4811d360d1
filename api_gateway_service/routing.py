"""
Route table and dispatch for the API Gateway.

Resolution order:
1. Literal (method, path) rules. These are the public exceptions inside an
   otherwise protected path family (login, register, package listing).
2. Prefix rules, longest matching prefix first.
3. Nothing matched: RESOURCE_NOT_FOUND.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from api_gateway_service.config import Settings
from api_gateway_service.error_handling import raise_resource_not_found
from api_gateway_service.models import BackendDescriptor, RouteMatch, RouteRule, RuleKind


def _normalise(path: str) -> str:
    if len(path) > 1 and path.endswith("/"):
        return path[:-1]
    return path


def literal(method: str, path: str, backend: str, requires_auth: bool = False) -> RouteRule:
    return RouteRule(
        kind=RuleKind.LITERAL,
        method=method.upper(),
        pattern=_normalise(path),
        backend=backend,
        requires_auth=requires_auth,
    )


def prefix(pattern: str, backend: str, requires_auth: bool) -> RouteRule:
    return RouteRule(
        kind=RuleKind.PREFIX,
        pattern=_normalise(pattern),
        backend=backend,
        requires_auth=requires_auth,
    )


class RouteTable:
    """Immutable (method, path) -> backend resolver."""

    def __init__(
        self, rules: Iterable[RouteRule], backends: Iterable[BackendDescriptor]
    ) -> None:
        self._backends = {backend.name: backend for backend in backends}
        literals: dict[tuple[str, str], RouteRule] = {}
        prefixes: dict[str, RouteRule] = {}

        for rule in rules:
            if rule.backend not in self._backends:
                raise ValueError(
                    f"Route {rule.pattern!r} targets unknown backend {rule.backend!r}"
                )
            if rule.kind == RuleKind.LITERAL:
                if rule.method is None:
                    raise ValueError(f"Literal route {rule.pattern!r} needs a method")
                key = (rule.method, rule.pattern)
                if key in literals:
                    raise ValueError(f"Duplicate literal route {rule.method} {rule.pattern}")
                literals[key] = rule
            else:
                if rule.pattern in prefixes:
                    raise ValueError(f"Duplicate prefix route {rule.pattern}")
                prefixes[rule.pattern] = rule

        self._literals = literals
        # Longest first, so the first hit is the most specific prefix
        self._prefixes = sorted(prefixes.values(), key=lambda r: len(r.pattern), reverse=True)

    def match(self, method: str, path: str) -> RouteMatch | None:
        path = _normalise(path)

        rule = self._literals.get((method.upper(), path))
        if rule is None:
            for candidate in self._prefixes:
                if path == candidate.pattern or path.startswith(f"{candidate.pattern}/"):
                    rule = candidate
                    break

        if rule is None:
            return None
        return RouteMatch(rule=rule, backend=self._backends[rule.backend])

    def resolve(self, method: str, path: str, correlation_id: UUID) -> RouteMatch:
        """Resolve a request or raise RESOURCE_NOT_FOUND (route not found)."""
        route = self.match(method, path)
        if route is None:
            raise_resource_not_found(
                service="api_gateway_service",
                operation="resolve_route",
                resource_type="route",
                resource_id=f"{method.upper()} {path}",
                correlation_id=correlation_id,
            )
        return route


def build_route_table(settings: Settings) -> RouteTable:
    """The gateway's fixed route table."""
    gw = settings.GATEWAY_PATH_PREFIX.rstrip("/")
    rules = [
        literal("POST", f"{gw}/user/login", "user"),
        literal("POST", f"{gw}/user/register", "user"),
        literal("POST", f"{gw}/payment/packages/list", "payment"),
        prefix(f"{gw}/user", "user", requires_auth=True),
        prefix(f"{gw}/worksheet", "worksheet", requires_auth=True),
        prefix(f"{gw}/payment", "payment", requires_auth=True),
        prefix(f"{gw}/notification", "notification", requires_auth=False),
    ]
    return RouteTable(rules, settings.backend_descriptors())


def rewrite_path(path: str, gateway_prefix: str, upstream_prefix: str) -> str:
    """Swap the leading gateway version prefix for the backend API prefix.

    >>> rewrite_path("/v1/user/profile", "/v1", "/api")
    '/api/user/profile'
    """
    gateway_prefix = gateway_prefix.rstrip("/")
    upstream_prefix = upstream_prefix.rstrip("/")
    if path == gateway_prefix or path.startswith(f"{gateway_prefix}/"):
        return f"{upstream_prefix}{path[len(gateway_prefix):]}"
    return path
