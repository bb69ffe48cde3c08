"""
Tenant resolution from request signals.

Precedence, first match wins:
  1. Tenant-id header (x-tenant-id), looked up by primary key
  2. Subdomain of the Host header, looked up by slug
     (reserved: www, api, admin, app, localhost)
  3. Path prefix /tenant/{slug}/...

Only ACTIVE tenants resolve. SUSPENDED and INACTIVE tenants are
indistinguishable from missing ones here; the distinction is surfaced only
after membership has been confirmed, so non-members learn nothing about
tenant existence.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session
from starlette.requests import HTTPConnection

from aiforge.config.auth_settings import (
    RESERVED_SUBDOMAINS,
    TENANT_PATH_PREFIX,
    get_tenant_header_name,
)
from aiforge.models.tenant import Tenant, TenantStatus
from aiforge.platform.errors import TenantNotFoundError

logger = logging.getLogger(__name__)


class ResolutionSource(str, enum.Enum):
    HEADER = "header"
    SUBDOMAIN = "subdomain"
    PATH = "path"


@dataclass(frozen=True)
class ResolvedTenant:
    tenant_id: str
    tenant: Tenant
    source: ResolutionSource


def _strip_port(host: str) -> str:
    if host.startswith("["):
        # IPv6 literal, never a tenant subdomain
        return ""
    return host.split(":", 1)[0]


def subdomain_from_host(host: Optional[str]) -> Optional[str]:
    """
    Return the tenant subdomain for a Host header value, if any.

    `acme.example.com` -> "acme", `acme.localhost:3000` -> "acme",
    `example.com` -> None, `www.example.com` -> None.
    """
    if not host:
        return None
    hostname = _strip_port(host.strip().lower()).rstrip(".")
    if not hostname:
        return None

    labels = hostname.split(".")
    is_local = len(labels) == 2 and labels[1] == "localhost"
    if len(labels) < 3 and not is_local:
        return None
    if all(label.isdigit() for label in labels):
        # IPv4 address
        return None

    subdomain = labels[0]
    if not subdomain or subdomain in RESERVED_SUBDOMAINS:
        return None
    return subdomain


def slug_from_path(path: Optional[str]) -> Optional[str]:
    """Return the slug from a `/tenant/{slug}/...` path, if present."""
    if not path:
        return None
    segments = [segment for segment in path.split("/") if segment]
    if len(segments) >= 2 and segments[0] == TENANT_PATH_PREFIX:
        return segments[1].lower()
    return None


class TenantResolver:
    """Determines which tenant a request targets."""

    def __init__(self, session: Session):
        self.session = session

    def _active_by_id(self, tenant_id: str) -> Optional[Tenant]:
        return (
            self.session.query(Tenant)
            .filter(Tenant.id == tenant_id, Tenant.status == TenantStatus.ACTIVE)
            .first()
        )

    def _active_by_slug(self, slug: str) -> Optional[Tenant]:
        return (
            self.session.query(Tenant)
            .filter(Tenant.slug == slug, Tenant.status == TenantStatus.ACTIVE)
            .first()
        )

    def try_resolve(
        self,
        header_tenant_id: Optional[str] = None,
        host: Optional[str] = None,
        path: Optional[str] = None,
    ) -> Optional[ResolvedTenant]:
        """Resolve from raw signals; None when nothing matches an active tenant."""
        if header_tenant_id:
            tenant = self._active_by_id(header_tenant_id.strip())
            if tenant is not None:
                return ResolvedTenant(tenant.id, tenant, ResolutionSource.HEADER)
            # Unknown or non-active header tenant falls through
            logger.info("Tenant header did not match an active tenant")

        subdomain = subdomain_from_host(host)
        if subdomain:
            tenant = self._active_by_slug(subdomain)
            if tenant is not None:
                return ResolvedTenant(tenant.id, tenant, ResolutionSource.SUBDOMAIN)

        slug = slug_from_path(path)
        if slug:
            tenant = self._active_by_slug(slug)
            if tenant is not None:
                return ResolvedTenant(tenant.id, tenant, ResolutionSource.PATH)

        return None

    def resolve(self, connection: HTTPConnection) -> ResolvedTenant:
        """
        Resolve the tenant for an inbound request.

        Raises:
            TenantNotFoundError: If no signal matches an active tenant
        """
        resolved = self.try_resolve(
            header_tenant_id=connection.headers.get(get_tenant_header_name()),
            host=connection.headers.get("host"),
            path=connection.url.path,
        )
        if resolved is None:
            logger.warning(
                "Tenant resolution failed",
                extra={"path": connection.url.path},
            )
            raise TenantNotFoundError()
        return resolved
