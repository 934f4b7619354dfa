from enum import Enum
from typing import Any, Optional

from tanyourpeach.models.appointment import Appointment
from tanyourpeach.models.user import User


class Action(str, Enum):
    LIST_ALL = "list_all"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE = "manage"


ADMIN_ONLY = {Action.LIST_ALL, Action.DELETE, Action.MANAGE}


def owns_appointment(actor: User, appointment: Appointment) -> bool:
    if appointment.user_id is not None and appointment.user_id == actor.id:
        return True
    return (appointment.client_email or "").lower() == (actor.email or "").lower()


def can_access(actor: Optional[User], resource: Any, action: Action) -> bool:
    """Decide whether actor may perform action on resource.

    Admins may do anything. Everyone else is limited to reading and
    updating what they own: appointments booked under their email or
    account, and their own user record.
    """
    if actor is None:
        return False

    if actor.is_admin:
        return True

    if action in ADMIN_ONLY:
        return False

    if isinstance(resource, Appointment):
        return owns_appointment(actor, resource)

    if isinstance(resource, User):
        return resource.id is not None and resource.id == actor.id

    return False
