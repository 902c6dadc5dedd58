import pytest

from rmdb.record import (
    PAGE_SIZE,
    RM_FIRST_RECORD_PAGE,
    RM_MAX_RECORD_SIZE,
    RM_NO_PAGE,
    InvalidRecordSizeError,
    PageNotExistError,
    Rid,
    RmFileHdr,
    RmManager,
    RmRecord,
    RmScan,
)

RECORD_SIZE = 8


@pytest.fixture
def manager(tmp_path):
    return RmManager(tmp_path)


@pytest.fixture
def handle(manager):
    manager.create_file("tb", RECORD_SIZE)
    fh = manager.open_file("tb")
    yield fh
    fh.close()


def rec(i):
    return i.to_bytes(RECORD_SIZE, "little")


def test_file_hdr_round_trip():
    hdr = RmFileHdr(16, 3, 100, RM_NO_PAGE, 13)
    packed = hdr.pack()
    assert len(packed) == 20
    assert RmFileHdr.unpack(packed) == hdr


def test_file_hdr_unpack_short():
    with pytest.raises(ValueError):
        RmFileHdr.unpack(b"\x01\x02")


def test_record_serialize_format():
    assert RmRecord(b"ab").serialize() == b"\x02\x00\x00\x00ab"


def test_record_round_trip():
    record = RmRecord(b"hello world")
    assert RmRecord.deserialize(record.serialize()) == record
    assert record.size == len(b"hello world")


def test_record_deserialize_truncated():
    with pytest.raises(ValueError):
        RmRecord.deserialize(b"\x05\x00\x00\x00ab")


@pytest.mark.parametrize("size", [0, -1, RM_MAX_RECORD_SIZE + 1])
def test_invalid_record_size(manager, size):
    with pytest.raises(InvalidRecordSizeError):
        manager.create_file("bad", size)


def test_max_record_size_fits_page(manager):
    manager.create_file("big", RM_MAX_RECORD_SIZE)
    with manager.open_file("big") as fh:
        hdr = fh.file_hdr
        assert hdr.num_pages == 1
        assert hdr.first_free_page_no == RM_NO_PAGE
        used = 8 + hdr.bitmap_size + hdr.num_records_per_page * hdr.record_size
        assert used <= PAGE_SIZE
        assert hdr.num_records_per_page >= 1


def test_create_existing_fails(manager, handle):
    with pytest.raises(FileExistsError):
        manager.create_file("tb", RECORD_SIZE)


def test_insert_and_get(handle):
    rid = handle.insert_record(rec(42))
    assert rid == Rid(RM_FIRST_RECORD_PAGE, 0)
    assert handle.is_record(rid)
    assert handle.get_record(rid).data == rec(42)


def test_insert_wrong_length(handle):
    with pytest.raises(ValueError):
        handle.insert_record(b"short")


def test_delete_record(handle):
    first = handle.insert_record(rec(1))
    second = handle.insert_record(rec(2))
    handle.delete_record(first)
    assert not handle.is_record(first)
    assert handle.is_record(second)
    assert handle.insert_record(rec(3)) == first


def test_update_record(handle):
    rid = handle.insert_record(rec(1))
    handle.update_record(rid, rec(7))
    assert handle.get_record(rid).data == rec(7)


def test_missing_page(handle):
    with pytest.raises(PageNotExistError):
        handle.get_record(Rid(5, 0))


def test_full_page_moves_to_next_page(handle):
    per_page = handle.file_hdr.num_records_per_page
    rids = [handle.insert_record(rec(i)) for i in range(per_page + 1)]
    assert {r.page_no for r in rids[:per_page]} == {RM_FIRST_RECORD_PAGE}
    assert rids[-1] == Rid(RM_FIRST_RECORD_PAGE + 1, 0)
    handle.delete_record(rids[3])
    assert handle.insert_record(rec(999)) == rids[3]


def test_scan_empty(handle):
    scan = RmScan(handle)
    assert scan.is_end()
    assert list(scan) == []


def test_scan_visits_all(handle):
    per_page = handle.file_hdr.num_records_per_page
    rids = [handle.insert_record(rec(i)) for i in range(per_page + 3)]
    handle.delete_record(rids[0])
    assert list(RmScan(handle)) == rids[1:]


def test_scan_next_after_end(handle):
    scan = RmScan(handle)
    with pytest.raises(PageNotExistError):
        scan.next()


def test_persistence(manager):
    manager.create_file("p", RECORD_SIZE)
    fh = manager.open_file("p")
    rids = [fh.insert_record(rec(i)) for i in range(5)]
    manager.close_file(fh)
    assert fh.closed
    with manager.open_file("p") as reopened:
        assert [reopened.get_record(r).data for r in rids] == [rec(i) for i in range(5)]
        assert list(RmScan(reopened)) == rids


def test_destroy_file(manager):
    manager.create_file("gone", RECORD_SIZE)
    manager.destroy_file("gone")
    with pytest.raises(FileNotFoundError):
        manager.open_file("gone")


def test_slot_out_of_range(handle):
    handle.insert_record(rec(1))
    with pytest.raises(IndexError):
        handle.is_record(Rid(RM_FIRST_RECORD_PAGE, -1))