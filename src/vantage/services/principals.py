"""Resolve authenticated claims into a detached ``Principal`` snapshot."""

import logging
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from vantage.models.enums import Permission, PrincipalKind
from vantage.models.principal import Principal, TeamRef
from vantage.repositories.user_repo import ApiKeyRepository, UserRepository

logger = logging.getLogger(__name__)

_KNOWN_PERMISSIONS = {permission.value for permission in Permission}


def parse_permissions(values: Iterable[str]) -> frozenset[Permission]:
    known = set()
    for value in values:
        if value in _KNOWN_PERMISSIONS:
            known.add(Permission(value))
        else:
            logger.debug("Ignoring unknown permission %s", value)
    return frozenset(known)


def _team_ref(team) -> TeamRef:
    return TeamRef(id=team.id, uuid=team.uuid, name=team.name)


async def load_principal(session: AsyncSession, claims: dict) -> Principal | None:
    """Build the principal named by ``claims`` or return None if it no longer exists.

    Users hold their own permissions plus those of every team they belong to.
    API keys act as their owning team.
    """
    subject = claims.get("sub")
    kind = claims.get("kind", PrincipalKind.USER.value)

    if kind == PrincipalKind.API_KEY.value:
        api_key = await ApiKeyRepository(session).get(subject)
        if api_key is None or not api_key.is_active:
            return None
        return Principal(
            kind=PrincipalKind.API_KEY,
            subject=api_key.key_id,
            name=api_key.name,
            teams=(_team_ref(api_key.team),),
            permissions=parse_permissions(api_key.team.permissions or []),
        )

    user = await UserRepository(session).get(subject)
    if user is None or not user.is_active:
        return None
    granted = list(user.permissions or [])
    for team in user.teams:
        granted.extend(team.permissions or [])
    return Principal(
        kind=PrincipalKind.USER,
        subject=user.user_id,
        name=user.display_name,
        teams=tuple(_team_ref(team) for team in user.teams),
        permissions=parse_permissions(granted),
    )
