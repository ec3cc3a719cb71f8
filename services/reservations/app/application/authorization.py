"""Single ownership decision used by every reservation mutation."""
from dataclasses import dataclass

from app.domain.errors import Forbidden
from app.domain.models import Reservation, Role


@dataclass(frozen=True)
class Caller:
    user_id: int
    role: Role


def authorize(caller: Caller, reservation: Reservation, required_role: Role) -> bool:
    """
    Allow ``caller`` to act on ``reservation`` in ``required_role``.

    A patient may act only on their own reservations, a pharmacy user only
    on reservations placed at the pharmacy they own.  Admins get no implicit
    rights here.
    """
    if caller.role != required_role:
        return False
    if required_role == Role.PATIENT:
        return reservation.patient_id == caller.user_id
    if required_role == Role.PHARMACY:
        return reservation.pharmacy is not None and reservation.pharmacy.user_id == caller.user_id
    return False


def ensure_authorized(caller: Caller, reservation: Reservation, required_role: Role) -> None:
    if authorize(caller, reservation, required_role):
        return
    if required_role == Role.PHARMACY:
        raise Forbidden("This reservation does not belong to your pharmacy")
    raise Forbidden("This reservation does not belong to you")
