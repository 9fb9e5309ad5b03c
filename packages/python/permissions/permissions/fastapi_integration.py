from __future__ import annotations

from fastapi import HTTPException
from loguru import logger

from .rules import TeamRole, has_team_role


async def require_team_role(team_id: str, user_id: str, role: TeamRole) -> None:
    """
    Raise 403 unless the user holds ``role`` on the team.

    Admins implicitly pass member checks, so a read only needs one of the two
    tuples to exist.
    """

    if await has_team_role(team_id, user_id, role):
        return
    if role is TeamRole.MEMBER and await has_team_role(team_id, user_id, TeamRole.ADMIN):
        return

    logger.info(
        "User {user_id} lacks {role} on team {team_id}",
        user_id=user_id,
        role=role.value,
        team_id=team_id,
    )
    raise HTTPException(status_code=403, detail="Forbidden")
