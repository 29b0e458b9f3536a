"""
Registration Lookup - registrar and expiry date via RDAP.

Queries the RDAP bootstrap service, which redirects to the authoritative
registry server for the TLD. Only the expiry date and registrar name are
kept; a failed lookup writes nothing.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

import httpx
import structlog

from seo_health.core.config import get_settings
from seo_health.core.exceptions import DomainNotFoundError
from seo_health.engines.base import RegistrationInfo, RegistrationStatus
from seo_health.storage.repository import HealthRepository

logger = structlog.get_logger(__name__)
settings = get_settings()

_PREFIX_RE = re.compile(r"^(https?://)?(www\.)?", re.IGNORECASE)

EXPIRY_EVENTS = ("expiration", "registration expiration")


def registrable_name(domain_name: str) -> str:
    """Strip scheme, leading www. and any path: "https://www.x.com/a" -> "x.com"."""
    name = _PREFIX_RE.sub("", domain_name.strip().lower())
    return name.split("/")[0]


# ─────────────────────────────────────────────
# RDAP payload parsing
# ─────────────────────────────────────────────

def _parse_event_date(value: Any) -> date | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def extract_expiry_date(payload: dict[str, Any]) -> date | None:
    expiry = None
    for event in payload.get("events") or []:
        if isinstance(event, dict) and event.get("eventAction") in EXPIRY_EVENTS:
            expiry = _parse_event_date(event.get("eventDate")) or expiry
    return expiry


def _vcard_fn(entity: dict[str, Any]) -> str | None:
    vcard_array = entity.get("vcardArray")
    if not isinstance(vcard_array, list) or len(vcard_array) < 2 or not isinstance(vcard_array[1], list):
        return None
    for prop in vcard_array[1]:
        # jCard property: [name, params, type, value]
        if isinstance(prop, list) and len(prop) > 3 and prop[0] == "fn" and prop[3]:
            return str(prop[3])
    return None


def extract_registrar_name(payload: dict[str, Any]) -> str | None:
    for entity in payload.get("entities") or []:
        if not isinstance(entity, dict) or "registrar" not in (entity.get("roles") or []):
            continue

        name = _vcard_fn(entity) or entity.get("handle")
        if not name:
            for public_id in entity.get("publicIds") or []:
                if isinstance(public_id, dict) and public_id.get("type") == "IANA Registrar ID":
                    name = f"Registrar #{public_id.get('identifier')}"
        # Only the first registrar entity is considered
        return name or None
    return None


# ─────────────────────────────────────────────
# Lookup
# ─────────────────────────────────────────────

class RegistrationLookup:

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        bootstrap_url: str | None = None,
        timeout: float | None = None,
    ):
        self.http_client = http_client
        self.bootstrap_url = (bootstrap_url or settings.RDAP_BOOTSTRAP_URL).rstrip("/")
        self.timeout = timeout or settings.RDAP_REQUEST_TIMEOUT
        self.headers = {
            "Accept": "application/rdap+json, application/json",
            "User-Agent": settings.RDAP_USER_AGENT,
        }

    async def lookup(self, domain_name: str) -> RegistrationInfo:
        name = registrable_name(domain_name)
        try:
            response = await self.http_client.get(
                f"{self.bootstrap_url}/{name}",
                headers=self.headers,
                follow_redirects=True,
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("RDAP lookup failed", domain=name, error=str(e))
            return RegistrationInfo(
                domain_name=name,
                status=RegistrationStatus.ERROR,
                message=str(e) or "RDAP lookup failed",
            )

        if not isinstance(payload, dict):
            payload = {}
        expiry = extract_expiry_date(payload)
        registrar = extract_registrar_name(payload)

        if expiry and registrar:
            status = RegistrationStatus.OK
        elif expiry or registrar:
            status = RegistrationStatus.PARTIAL
        else:
            status = RegistrationStatus.NOT_FOUND

        logger.info("RDAP lookup complete", domain=name, status=status.value, registrar=registrar, expiry=str(expiry))
        return RegistrationInfo(domain_name=name, expiry_date=expiry, registrar_name=registrar, status=status)

    async def refresh(self, repository: HealthRepository, domain_id: UUID) -> RegistrationInfo:
        """Look up the domain's registration and store whatever was found."""
        domain = await repository.get_domain(domain_id)
        if domain is None:
            raise DomainNotFoundError(domain_id)

        info = await self.lookup(domain.domain_name)
        if info.status != RegistrationStatus.ERROR:
            await repository.update_registration(domain_id, info.expiry_date, info.registrar_name)
        return info
