"""
Viewer — the identity a request acts as.

Authentication happens upstream; the gateway forwards the verified identity
in headers and ``middleware/viewer_context.py`` turns them into a Viewer.

Roles:
    admin                             every campus and unit
    campus_director, campus_odimo     their own campus
    vice_president                    units whose vice_president_id is theirs
    unit_coordinator, unit_odimo,
    employee (any other role)         their own unit only
"""

from __future__ import annotations

from dataclasses import dataclass

ROLE_ADMIN = "admin"
ROLE_CAMPUS_DIRECTOR = "campus_director"
ROLE_CAMPUS_ODIMO = "campus_odimo"
ROLE_VICE_PRESIDENT = "vice_president"
ROLE_UNIT_COORDINATOR = "unit_coordinator"
ROLE_UNIT_ODIMO = "unit_odimo"
ROLE_EMPLOYEE = "employee"

CAMPUS_SUPERVISOR_ROLES = frozenset({ROLE_CAMPUS_DIRECTOR, ROLE_CAMPUS_ODIMO})
UNIT_SUPERVISOR_ROLES = frozenset({ROLE_VICE_PRESIDENT})

# Roles that may approve / reject submissions inside their scope
REVIEWER_ROLES = frozenset({ROLE_ADMIN}) | CAMPUS_SUPERVISOR_ROLES | UNIT_SUPERVISOR_ROLES


@dataclass(frozen=True)
class Viewer:
    user_id: str | None
    role: str = ROLE_EMPLOYEE
    name: str = ""
    campus_id: str | None = None
    unit_id: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_campus_supervisor(self) -> bool:
        return self.role in CAMPUS_SUPERVISOR_ROLES

    @property
    def is_unit_supervisor(self) -> bool:
        return self.role in UNIT_SUPERVISOR_ROLES

    @property
    def is_reviewer(self) -> bool:
        return self.role in REVIEWER_ROLES

    def belongs_to(self, unit_id, campus_id=None) -> bool:
        """True when the viewer is a member of the given unit (and campus)."""
        if not self.unit_id or self.unit_id != unit_id:
            return False
        return campus_id is None or self.campus_id == campus_id


ANONYMOUS = Viewer(user_id=None)
