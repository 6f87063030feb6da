"""
Merge a freshly fetched registration list into the one held in memory.

Status only ever moves forward through the queue, so when the two sides
disagree the one further along wins. That keeps a slow refresh that started
before an operator action from rolling the action back on screen.
"""

from dataclasses import replace
from typing import Iterable, List, Tuple

from ..entities.registration import Registration
from ..enums.workflow import RegistrationStatus, status_rank


def pick_newer_status(
    local: Registration, fetched: Registration
) -> Tuple[RegistrationStatus, bool]:
    """Status and confirmation flag of whichever side is further along.

    Ties go to the fetched record.
    """
    if status_rank(local.status) > status_rank(fetched.status):
        return local.status, local.is_confirmed
    return fetched.status, fetched.is_confirmed


def merge_registrations(
    local: Iterable[Registration], fetched: Iterable[Registration]
) -> List[Registration]:
    """Merged list in fetched order.

    Records only present locally are dropped; records only present in the
    fetched list are taken as-is.
    """
    local_by_id = {reg.id: reg for reg in local}
    merged: List[Registration] = []
    for incoming in fetched:
        current = local_by_id.get(incoming.id)
        if current is None:
            merged.append(incoming)
            continue
        status, confirmed = pick_newer_status(current, incoming)
        tags = list(incoming.tags) if incoming.tags else list(current.tags)
        merged.append(replace(incoming, status=status, is_confirmed=confirmed, tags=tags))
    return merged
