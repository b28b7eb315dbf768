"""Request-scoped access roles."""

from enum import Enum


class Role(str, Enum):
    """Role resolved from a bearer token for the lifetime of one request.

    Roles are ordered: a role grants every permission of the roles below it,
    so writer keys are accepted on every reader route. ``NONE`` grants nothing,
    not even itself.
    """

    NONE = "none"
    READER = "reader"
    WRITER = "writer"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def grants(self, required: "Role") -> bool:
        """Return True if this role may invoke an operation requiring ``required``."""
        if self is Role.NONE:
            return False
        return self.rank >= required.rank


_RANKS = {Role.NONE: 0, Role.READER: 1, Role.WRITER: 2}
