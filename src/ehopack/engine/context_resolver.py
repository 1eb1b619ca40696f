"""
EHO Pack Context Resolver

Resolves the identity of the site being reported on, and its parent
organization, before any data is gathered.

Key features:
- Placeholder identity when the site lookup fails or returns nothing
- Organization lookup only when the site names one
- Connectivity failure propagates (the only fatal outcome)
"""
from __future__ import annotations

import logging

from ..exceptions import StoreUnavailableError
from ..models import Organization, Site, SiteContext
from ..store import QueryClient

logger = logging.getLogger(__name__)

SITE_QUERY = "site_by_id"
ORGANIZATION_QUERY = "organization_by_id"


async def resolve_site_context(client: QueryClient, site_id: str) -> SiteContext:
    """
    Resolve a site id to a SiteContext.

    Most downstream queries key on the site id directly, so a broken identity
    lookup degrades to a placeholder ("Unknown Site", no organization) rather
    than blocking the report.

    Raises:
        StoreUnavailableError: If the store cannot be reached at all
    """
    site = await _lookup_site(client, site_id)
    if site.organization_id is None:
        return SiteContext(site=site)

    organization = await _lookup_organization(client, site.organization_id, site_id)
    return SiteContext(site=site, organization=organization)


async def _lookup_site(client: QueryClient, site_id: str) -> Site:
    try:
        rows = await client.fetch(SITE_QUERY, {"id": site_id})
    except StoreUnavailableError:
        raise
    except Exception as e:
        logger.warning(
            "Site lookup failed, using placeholder identity: %s", e,
            extra={"site_id": site_id},
        )
        return Site.placeholder(site_id)

    if not rows:
        logger.warning("Site lookup returned no rows, using placeholder identity", extra={"site_id": site_id})
        return Site.placeholder(site_id)

    try:
        return Site.from_row(rows[0])
    except (KeyError, TypeError) as e:
        logger.warning("Site row malformed, using placeholder identity: %s", e, extra={"site_id": site_id})
        return Site.placeholder(site_id)


async def _lookup_organization(client: QueryClient, organization_id: str, site_id: str):
    try:
        rows = await client.fetch(ORGANIZATION_QUERY, {"id": organization_id})
    except StoreUnavailableError:
        raise
    except Exception as e:
        logger.warning("Organization lookup failed: %s", e, extra={"site_id": site_id})
        return None

    if not rows:
        return None
    try:
        return Organization.from_row(rows[0])
    except (KeyError, TypeError) as e:
        logger.warning("Organization row malformed: %s", e, extra={"site_id": site_id})
        return None
