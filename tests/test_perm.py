import pytest

from rmqclient.perm import (
    PERM_INHERIT,
    PERM_PRIORITY,
    PERM_READ,
    PERM_WRITE,
    perm_to_string,
    queue_is_inherited,
    queue_is_readable,
    queue_is_writeable,
)


def test_all_permissions():
    assert perm_to_string(PERM_READ | PERM_WRITE | PERM_INHERIT) == "RWX"


def test_no_permissions():
    assert perm_to_string(0) == "---"


def test_read_only():
    assert perm_to_string(PERM_READ) == "R--"


def test_priority_bit_does_not_show():
    assert perm_to_string(PERM_PRIORITY | PERM_READ) == perm_to_string(PERM_READ)


@pytest.mark.parametrize("perm", range(16))
def test_string_matches_predicates(perm):
    text = perm_to_string(perm)
    assert len(text) == 3
    assert (text[0] == "R") == queue_is_readable(perm)
    assert (text[1] == "W") == queue_is_writeable(perm)
    assert (text[2] == "X") == queue_is_inherited(perm)


def test_predicates_on_single_bits():
    assert queue_is_readable(PERM_READ) and not queue_is_readable(PERM_WRITE)
    assert queue_is_writeable(PERM_WRITE) and not queue_is_writeable(PERM_READ)
    assert queue_is_inherited(PERM_INHERIT) and not queue_is_inherited(PERM_PRIORITY)