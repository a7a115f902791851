"""Installation-scoped repository access resolution.

An App can be installed on many accounts, and each installation only sees the
repositories its account granted. Given a repository name we do not know
which installation (if any) can see it, so we ask each one in turn.

Probing is strictly sequential and stops at the first installation that
answers 2xx for the repository, so the common case (first installation has
access) costs one token mint. Worst case is linear in the installation count.

    installation A ── mint token ── GET /repos/o/r ── 404 → next
    installation B ── mint token ── GET /repos/o/r ── 200 → stop, return
    installation C    (never contacted)
"""

import logging
from contextlib import aclosing
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx

from gh_access.github.auth import AppIdentity
from gh_access.github.client import (
    InstallationToken,
    decode_json,
    fetch_repository,
    list_installations,
    mint_installation_token,
    raise_for_upstream,
)
from gh_access.github.errors import (
    MissingParameterError,
    NotFoundAcrossInstallations,
    UpstreamError,
)

logger = logging.getLogger(__name__)

# Statuses meaning "this installation cannot see the repository".
INVISIBLE_STATUSES = frozenset({403, 404})


@dataclass(frozen=True)
class RepositoryRef:
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, owner_or_full_name: str, repo: Optional[str] = None) -> "RepositoryRef":
        """Accept either ("owner", "repo") or a single "owner/repo"."""
        if repo is not None:
            owner, name = owner_or_full_name, repo
        else:
            owner, _, name = (owner_or_full_name or "").partition("/")

        owner, name = owner.strip(), name.strip()
        if not owner or not name or "/" in owner or "/" in name:
            raise MissingParameterError(
                f"Invalid repository {owner_or_full_name!r} (format: owner/repo)"
            )
        return cls(owner=owner, name=name)


@dataclass(frozen=True)
class RepositoryAccess:
    """The first installation found that can see a repository."""

    installation: dict
    token: InstallationToken
    repository: dict

    @property
    def installation_id(self) -> int:
        return self.installation["id"]


async def probe_installations(
    client: httpx.AsyncClient,
    identity: AppIdentity,
    full_name: str,
) -> AsyncIterator[RepositoryAccess]:
    """Yield an access grant for each installation that can see `full_name`.

    Installations are tried in the order GitHub lists them. Consumers that
    only want the first match should stop iterating (and close the generator)
    so that no further tokens are minted.

    Raises:
        UpstreamError: any status other than 2xx/403/404, on the token mint
            or the repository lookup. Probing does not continue past it.
    """
    installations = await list_installations(client, identity)
    logger.debug("Probing %d installations for %s", len(installations), full_name)

    for installation in installations:
        installation_id = installation["id"]
        try:
            token = await mint_installation_token(client, identity, installation_id)
        except UpstreamError as exc:
            # Suspended or just-deleted installations refuse token mints.
            if exc.status in INVISIBLE_STATUSES:
                logger.debug(
                    "Installation %s refused a token (%s), skipping",
                    installation_id,
                    exc.status,
                )
                continue
            raise

        response = await fetch_repository(client, token.token, full_name)
        if response.status_code in INVISIBLE_STATUSES:
            logger.debug(
                "Installation %s cannot see %s (%s)",
                installation_id,
                full_name,
                response.status_code,
            )
            continue
        raise_for_upstream(response, "Failed to get repository")

        logger.debug("Installation %s can see %s", installation_id, full_name)
        yield RepositoryAccess(
            installation=installation,
            token=token,
            repository=decode_json(response, "Failed to get repository"),
        )


async def resolve_repository_access(
    client: httpx.AsyncClient,
    identity: AppIdentity,
    full_name: str,
) -> RepositoryAccess:
    """Return the first installation able to see `full_name`.

    Raises NotFoundAcrossInstallations once every installation has answered
    403/404. That outcome is expected (repo not granted to the App yet) and
    is logged at info, not as a fault.
    """
    async with aclosing(probe_installations(client, identity, full_name)) as probes:
        async for access in probes:
            return access

    logger.info("No installation can see %s", full_name)
    raise NotFoundAcrossInstallations(full_name)


async def resolve_repository(
    client: httpx.AsyncClient,
    identity: AppIdentity,
    owner_or_full_name: str,
    repo: Optional[str] = None,
) -> dict:
    """Fetch a repository through whichever installation can see it."""
    ref = RepositoryRef.parse(owner_or_full_name, repo)
    access = await resolve_repository_access(client, identity, ref.full_name)
    return access.repository
