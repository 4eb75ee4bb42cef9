"""
Static role policy for every resource and action

All authorization decisions go through ``authorize``. Routers and services
never compare role strings themselves.
"""

import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

from app.models.user import Role


class Resource(str, enum.Enum):
    ACCOUNT = "account"
    DASHBOARD = "dashboard"
    PATIENT = "patient"
    APPOINTMENT = "appointment"
    MEDICAL_RECORD = "medical_record"


class Action(str, enum.Enum):
    CREATE = "create"
    LIST = "list"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class Scope(str, enum.Enum):
    ANY = "any"
    # the actor's own patient profile, or records attached to it
    OWN = "own"
    # the actor is the doctor of record
    ASSIGNED = "assigned"
    # the actor is the primary doctor, or nobody is
    ASSIGNED_OR_OPEN = "assigned_or_open"


PRIVILEGED_ROLES = frozenset({Role.ADMIN, Role.MANAGER, Role.STAFF})

PATIENT_SELF_UPDATE_FIELDS = frozenset({
    "contact_number",
    "email",
    "address",
    "emergency_contact_name",
    "emergency_contact_phone",
    "medical_history",
    "notes",
})

PATIENT_SELF_CREATE_FIELDS = frozenset({
    "first_name",
    "last_name",
    "date_of_birth",
    "gender",
}) | PATIENT_SELF_UPDATE_FIELDS

APPOINTMENT_PARTICIPANT_FIELDS = frozenset({"appointment_date", "reason", "notes", "status"})

MEDICAL_RECORD_AUTHOR_FIELDS = frozenset({
    "title",
    "visit_date",
    "description",
    "diagnosis",
    "treatment_plan",
    "follow_up_date",
    "attachments",
})


@dataclass(frozen=True)
class Grant:
    scope: Scope
    fields: Optional[FrozenSet[str]] = None  # None: every field
    allow_self: bool = True


@dataclass(frozen=True)
class Ownership:
    """Facts about the target record relative to the actor"""
    own: bool = False
    assigned: bool = False
    open: bool = False
    is_self: bool = False


@dataclass(frozen=True)
class Decision:
    permitted: bool
    reason: Optional[str] = None
    allowed_fields: Optional[FrozenSet[str]] = None

    def __bool__(self):
        return self.permitted

    def filter_fields(self, payload: dict) -> dict:
        """Drop keys the actor may not write; None means all are allowed"""
        if self.allowed_fields is None:
            return dict(payload)
        return {key: value for key, value in payload.items() if key in self.allowed_fields}


_ANY = Grant(Scope.ANY)


def _privileged(**extra: Grant) -> Dict[Role, Grant]:
    grants = {role: _ANY for role in PRIVILEGED_ROLES}
    grants.update({Role(key): grant for key, grant in extra.items()})
    return grants


POLICY: Dict[Tuple[Resource, Action], Dict[Role, Grant]] = {
    # Accounts are administered by admins only
    (Resource.ACCOUNT, Action.LIST): {Role.ADMIN: _ANY},
    (Resource.ACCOUNT, Action.READ): {Role.ADMIN: _ANY},
    (Resource.ACCOUNT, Action.DELETE): {Role.ADMIN: Grant(Scope.ANY, allow_self=False)},
    (Resource.DASHBOARD, Action.READ): {Role.ADMIN: _ANY},

    (Resource.PATIENT, Action.CREATE): _privileged(
        doctor=_ANY,
        patient=Grant(Scope.OWN, fields=PATIENT_SELF_CREATE_FIELDS),
    ),
    (Resource.PATIENT, Action.LIST): _privileged(
        doctor=Grant(Scope.ASSIGNED_OR_OPEN),
        patient=Grant(Scope.OWN),
    ),
    (Resource.PATIENT, Action.READ): _privileged(
        doctor=Grant(Scope.ASSIGNED_OR_OPEN),
        patient=Grant(Scope.OWN),
    ),
    (Resource.PATIENT, Action.UPDATE): _privileged(
        doctor=Grant(Scope.ASSIGNED_OR_OPEN),
        patient=Grant(Scope.OWN, fields=PATIENT_SELF_UPDATE_FIELDS),
    ),
    (Resource.PATIENT, Action.DELETE): _privileged(),

    (Resource.APPOINTMENT, Action.CREATE): _privileged(
        doctor=Grant(Scope.ASSIGNED),
        patient=Grant(Scope.OWN),
    ),
    (Resource.APPOINTMENT, Action.LIST): _privileged(
        doctor=Grant(Scope.ASSIGNED),
        patient=Grant(Scope.OWN),
    ),
    (Resource.APPOINTMENT, Action.READ): _privileged(
        doctor=Grant(Scope.ASSIGNED),
        patient=Grant(Scope.OWN),
    ),
    (Resource.APPOINTMENT, Action.UPDATE): _privileged(
        doctor=Grant(Scope.ASSIGNED, fields=APPOINTMENT_PARTICIPANT_FIELDS),
        patient=Grant(Scope.OWN, fields=APPOINTMENT_PARTICIPANT_FIELDS),
    ),
    (Resource.APPOINTMENT, Action.DELETE): _privileged(),

    (Resource.MEDICAL_RECORD, Action.CREATE): _privileged(
        doctor=Grant(Scope.ASSIGNED),
    ),
    (Resource.MEDICAL_RECORD, Action.LIST): _privileged(
        doctor=Grant(Scope.ASSIGNED),
        patient=Grant(Scope.OWN),
    ),
    (Resource.MEDICAL_RECORD, Action.READ): _privileged(
        doctor=Grant(Scope.ASSIGNED),
        patient=Grant(Scope.OWN),
    ),
    (Resource.MEDICAL_RECORD, Action.UPDATE): _privileged(
        doctor=Grant(Scope.ASSIGNED, fields=MEDICAL_RECORD_AUTHOR_FIELDS),
    ),
    (Resource.MEDICAL_RECORD, Action.DELETE): _privileged(
        doctor=Grant(Scope.ASSIGNED),
    ),
}


def parse_role(role) -> Optional[Role]:
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None


def grant_for(role, resource: Resource, action: Action) -> Optional[Grant]:
    parsed = parse_role(role)
    if parsed is None:
        return None
    return POLICY.get((resource, action), {}).get(parsed)


def coarse_gate(role, resource: Resource, action: Action) -> bool:
    """True when the role may attempt the action on at least some records"""
    return grant_for(role, resource, action) is not None


def _scope_satisfied(scope: Scope, ownership: Ownership) -> bool:
    if scope is Scope.ANY:
        return True
    if scope is Scope.OWN:
        return ownership.own
    if scope is Scope.ASSIGNED:
        return ownership.assigned
    if scope is Scope.ASSIGNED_OR_OPEN:
        return ownership.assigned or ownership.open
    return False


def authorize(role, resource: Resource, action: Action,
              ownership: Ownership = Ownership()) -> Decision:
    """Decide whether ``role`` may perform ``action`` on a record with ``ownership``"""
    parsed = parse_role(role)
    if parsed is None:
        return Decision(False, reason=f"unknown role {role!r}")

    grant = grant_for(role, resource, action)
    if grant is None:
        return Decision(False, reason=f"{parsed.value} has no {action.value} grant on {resource.value}")

    if not grant.allow_self and ownership.is_self:
        return Decision(False, reason=f"{parsed.value} may not {action.value} their own {resource.value}")

    if not _scope_satisfied(grant.scope, ownership):
        return Decision(False, reason=f"{resource.value} is outside {parsed.value} scope '{grant.scope.value}'")

    return Decision(True, allowed_fields=grant.fields)


def is_privileged(role) -> bool:
    return parse_role(role) in PRIVILEGED_ROLES
