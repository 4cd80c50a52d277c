import pytest

from rtmplive.pool import MAX_POOL_SIZE, Pool


def test_get_returns_requested_size():
    pool = Pool()
    assert len(pool.get(10)) == 10


def test_consecutive_slices_do_not_overlap():
    pool = Pool()
    first = pool.get(4)
    second = pool.get(4)
    second[:] = b"\x02" * 4
    first[:] = b"\x01" * 4
    assert bytes(second) == b"\x02" * 4
    assert bytes(first) == b"\x01" * 4


def test_exhausted_pool_starts_new_buffer():
    pool = Pool()
    big = pool.get(MAX_POOL_SIZE)
    big[0] = 9
    small = pool.get(1)
    small[0] = 7
    assert big[0] == 9
    assert small[0] == 7


def test_partial_exhaustion_still_serves():
    pool = Pool()
    pool.get(MAX_POOL_SIZE - 1)
    assert len(pool.get(2)) == 2


def test_request_larger_than_pool_rejected():
    with pytest.raises(ValueError):
        Pool().get(MAX_POOL_SIZE + 1)