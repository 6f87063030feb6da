"""
Queue merge tests: a refresh never moves a status backwards.
"""

import pytest

from clinicdesk.domain.entities.registration import Registration
from clinicdesk.domain.enums import RegistrationStatus
from clinicdesk.domain.services.queue_merge import merge_registrations, pick_newer_status

W, CA, CO, DONE, X = (
    RegistrationStatus.WAITING,
    RegistrationStatus.CALLING,
    RegistrationStatus.CONSULTING,
    RegistrationStatus.COMPLETED,
    RegistrationStatus.CANCELLED,
)


def reg(id, status=W, confirmed=False, tags=None, name="001"):
    return Registration(
        id=id, resource_id=501, queue_number=name, status=status, is_confirmed=confirmed, tags=tags or []
    )


@pytest.mark.parametrize(
    "local, fetched, expected",
    [
        (CA, W, CA),
        (CO, CA, CO),
        (W, CA, CA),
        (CO, DONE, DONE),
        (DONE, CO, DONE),
        (X, W, X),
        (DONE, X, X),  # equal rank, fetched wins
        (W, W, W),
    ],
)
def test_higher_rank_wins(local, fetched, expected):
    status, _ = pick_newer_status(reg(1, local), reg(1, fetched))
    assert status == expected


def test_confirmation_flag_follows_winning_side():
    status, confirmed = pick_newer_status(reg(1, CO, confirmed=True), reg(1, CA, confirmed=False))
    assert (status, confirmed) == (CO, True)


def test_merge_keeps_fetched_order_and_drops_local_only():
    local = [reg(1, CA), reg(9, CO)]
    fetched = [reg(2, W, name="002"), reg(1, W)]

    merged = merge_registrations(local, fetched)

    assert [r.id for r in merged] == [2, 1]
    assert merged[1].status == CA


def test_merge_preserves_local_tags_when_fetched_has_none():
    merged = merge_registrations([reg(1, tags=["VIP"])], [reg(1)])
    assert merged[0].tags == ["VIP"]

    merged = merge_registrations([reg(1, tags=["VIP"])], [reg(1, tags=["DEBT"])])
    assert merged[0].tags == ["DEBT"]


def test_merge_does_not_mutate_inputs():
    local = [reg(1, CO)]
    fetched = [reg(1, W)]
    merge_registrations(local, fetched)
    assert fetched[0].status == W
    assert local[0].status == CO
