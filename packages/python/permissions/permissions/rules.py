"""Team roles and the Keto object/subject naming used for them."""

from __future__ import annotations

from enum import Enum

from .config import settings
from .keto_client import keto_check

USER_SUBJECT_PREFIX = "user"
TEAM_KIND = "team"


class TeamRole(str, Enum):
    MEMBER = "member"  # read the checklist
    ADMIN = "admin"  # edit, reorder and delete tasks


def user_subject(user_id: str) -> str:
    return f"{USER_SUBJECT_PREFIX}:{user_id}"


def team_object(team_id: str) -> str:
    return f"{TEAM_KIND}:{team_id}"


async def has_team_role(team_id: str, user_id: str, role: TeamRole) -> bool:
    return await keto_check(
        namespace=settings.teams_namespace,
        object=team_object(team_id),
        relation=TeamRole(role).value,
        subject=user_subject(user_id),
    )
