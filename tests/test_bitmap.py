import pytest

from rmdb.bitmap import BITMAP_HIGHEST_BIT, BITMAP_WIDTH, Bitmap


def make(size=2):
    return Bitmap(bytearray(size))


def test_fresh_bitmap_has_no_set_bits():
    bm = make()
    assert bm.first_bit(True, 16) == 16
    assert bm.first_bit(False, 16) == 0


def test_first_position_is_highest_bit_of_first_byte():
    bm = make()
    bm.set(0)
    assert bm.buffer == bytearray([BITMAP_HIGHEST_BIT, 0])


def test_ninth_position_starts_second_byte():
    bm = make()
    bm.set(BITMAP_WIDTH)
    assert bm.buffer == bytearray([0, BITMAP_HIGHEST_BIT])


@pytest.mark.parametrize("pos", range(16))
def test_set_and_reset_round_trip(pos):
    bm = make()
    bm.set(pos)
    assert bm.is_set(pos)
    assert [p for p in range(16) if bm.is_set(p)] == [pos]
    bm.reset(pos)
    assert not bm.is_set(pos)
    assert bm.buffer == bytearray(2)


def test_reset_leaves_other_bits():
    bm = make()
    for pos in range(16):
        bm.set(pos)
    bm.reset(5)
    assert [p for p in range(16) if not bm.is_set(p)] == [5]


def test_next_bit_walks_set_positions():
    bm = make()
    bm.set(3)
    bm.set(10)
    assert bm.next_bit(True, 16, -1) == 3
    assert bm.next_bit(True, 16, 3) == 10
    assert bm.next_bit(True, 16, 10) == 16


def test_next_bit_respects_max_n():
    bm = make()
    bm.set(10)
    assert bm.next_bit(True, 10, -1) == 10
    assert bm.first_bit(True, 11) == 10


def test_first_free_after_filled_prefix():
    bm = make()
    for pos in range(5):
        bm.set(pos)
    assert bm.first_bit(False, 16) == 5


def test_clear_zeroes_buffer():
    bm = make()
    for pos in (0, 7, 9, 15):
        bm.set(pos)
    bm.clear()
    assert bm.buffer == bytearray(2)
    assert bm.first_bit(True, 16) == 16


def test_memoryview_slice_writes_through():
    page = bytearray(4)
    bm = Bitmap(memoryview(page)[2:])
    bm.set(0)
    assert page[2] == BITMAP_HIGHEST_BIT
    assert page[:2] == bytearray(2)


def test_read_only_buffer_rejects_set():
    bm = Bitmap(bytes(2))
    with pytest.raises(TypeError):
        bm.set(1)


def test_negative_position_rejected():
    bm = make()
    with pytest.raises(IndexError):
        bm.is_set(-1)


def test_position_past_buffer_rejected():
    bm = make()
    with pytest.raises(IndexError):
        bm.set(16)