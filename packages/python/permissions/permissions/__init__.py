from .config import PermissionsSettings, settings
from .keto_client import keto_check
from .rules import TeamRole, has_team_role, team_object, user_subject
from .fastapi_integration import require_team_role

__all__ = [
    "settings",
    "PermissionsSettings",
    "keto_check",
    "TeamRole",
    "has_team_role",
    "team_object",
    "user_subject",
    "require_team_role",
]
