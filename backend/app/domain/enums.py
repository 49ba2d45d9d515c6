"""Domain enumerations for strong typing & validation."""
from enum import Enum

class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"

DEFAULT_THEME = Theme.DARK

class PermissionLevel(str, Enum):
    VIEWER = "viewer"
    EDITOR = "editor"

class Access(str, Enum):
    """Effective access a user has on a graph."""
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"

    @property
    def can_edit(self) -> bool:
        return self in (Access.OWNER, Access.EDITOR)
