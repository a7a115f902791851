"""Repository sub-resources guarded by their own App permission.

Environments and Dependabot alerts sit behind permissions that are granted
separately from basic repository access. The repository GET from the probe
loop acts as a visibility gate: only an installation that can already see
the repository is asked for the sub-resource. That lets the answer be read
unambiguously:

    404  → the resource is empty or not set up      → empty result
    403  → the App lacks the scope for this resource → PermissionMissingError
           (raised at once; another installation would run with the same
           App permission set, so there is no point trying it)
"""

import logging
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from gh_access.github.auth import AppIdentity
from gh_access.github.client import decode_json, fetch_repository_resource, raise_for_upstream
from gh_access.github.errors import (
    DEPENDABOT_SCOPE,
    ENVIRONMENTS_SCOPE,
    NotFoundAcrossInstallations,
    PermissionMissingError,
    PermissionScope,
)
from gh_access.github.resolver import RepositoryRef, probe_installations

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopedResource:
    path: str
    label: str
    scope: PermissionScope


ENVIRONMENTS = ScopedResource(
    path="environments",
    label="environments",
    scope=ENVIRONMENTS_SCOPE,
)
DEPENDABOT_ALERTS = ScopedResource(
    path="dependabot/alerts",
    label="Dependabot alerts",
    scope=DEPENDABOT_SCOPE,
)


async def fetch_scoped(
    client: httpx.AsyncClient,
    identity: AppIdentity,
    full_name: str,
    resource: ScopedResource,
) -> Optional[Any]:
    """Fetch `resource` through the first installation that can see the repo.

    Returns the decoded JSON body, or None when the resource endpoint answers
    404.

    Raises:
        PermissionMissingError: the resource endpoint answered 403.
        NotFoundAcrossInstallations: no installation passed the visibility gate.
        UpstreamError: any other non-2xx answer.
    """
    ref = RepositoryRef.parse(full_name)

    async with aclosing(probe_installations(client, identity, ref.full_name)) as probes:
        async for access in probes:
            response = await fetch_repository_resource(
                client, access.token.token, ref.full_name, resource.path
            )
            if response.status_code == 404:
                logger.debug(
                    "No %s on %s (installation %s)",
                    resource.label,
                    ref.full_name,
                    access.installation_id,
                )
                return None
            if response.status_code == 403:
                logger.warning(
                    "Missing permission for %s on %s (installation %s): %s",
                    resource.label,
                    ref.full_name,
                    access.installation_id,
                    resource.scope.error_code,
                )
                raise PermissionMissingError(resource.scope)
            context = f"Failed to get {resource.label}"
            raise_for_upstream(response, context)
            return decode_json(response, context)

    logger.info("No installation can see %s", ref.full_name)
    raise NotFoundAcrossInstallations(ref.full_name)


async def list_environments(
    client: httpx.AsyncClient,
    identity: AppIdentity,
    full_name: str,
) -> dict:
    data = await fetch_scoped(client, identity, full_name, ENVIRONMENTS)
    if data is None:
        return {"environments": [], "total_count": 0}
    return {
        "environments": data.get("environments") or [],
        "total_count": data.get("total_count") or 0,
    }


async def list_dependabot_alerts(
    client: httpx.AsyncClient,
    identity: AppIdentity,
    full_name: str,
) -> list:
    return await fetch_scoped(client, identity, full_name, DEPENDABOT_ALERTS) or []
