"""Fixed-size record storage in paged table files."""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, ClassVar, Iterator

from rmdb.bitmap import BITMAP_WIDTH, Bitmap

PAGE_SIZE = 4096
RM_NO_PAGE = -1
RM_FILE_HDR_PAGE = 0
RM_FIRST_RECORD_PAGE = 1
RM_MAX_RECORD_SIZE = 512


class RecordError(Exception):
    """Base class of record layer errors."""


class PageNotExistError(RecordError):
    """A page number lies outside the table file."""

    def __init__(self, table_name: str, page_no: int) -> None:
        super().__init__(f"page {page_no} does not exist in table file {table_name!r}")
        self.table_name = table_name
        self.page_no = page_no


class InvalidRecordSizeError(RecordError, ValueError):
    """A record size outside the supported range."""

    def __init__(self, record_size: int) -> None:
        super().__init__(
            f"invalid record size {record_size}: must be between 1 and {RM_MAX_RECORD_SIZE}"
        )
        self.record_size = record_size


@dataclass(frozen=True, order=True)
class Rid:
    """Location of a record: page number and slot number."""

    page_no: int
    slot_no: int


@dataclass
class RmFileHdr:
    """Metadata of a table file, stored at the start of page 0."""

    record_size: int
    num_pages: int
    num_records_per_page: int
    first_free_page_no: int
    bitmap_size: int

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<5i")
    SIZE: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        """Encode the header as bytes."""
        return self._STRUCT.pack(
            self.record_size,
            self.num_pages,
            self.num_records_per_page,
            self.first_free_page_no,
            self.bitmap_size,
        )

    @classmethod
    def unpack(cls, data: bytes) -> RmFileHdr:
        """Decode a header from the start of ``data``."""
        if len(data) < cls.SIZE:
            raise ValueError(f"file header needs {cls.SIZE} bytes, got {len(data)}")
        return cls(*cls._STRUCT.unpack_from(data))


@dataclass
class RmPageHdr:
    """Metadata at the start of every record page."""

    next_free_page_no: int = RM_NO_PAGE
    num_records: int = 0

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<2i")
    SIZE: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        """Encode the header as bytes."""
        return self._STRUCT.pack(self.next_free_page_no, self.num_records)

    @classmethod
    def unpack(cls, data: bytes) -> RmPageHdr:
        """Decode a header from the start of ``data``."""
        return cls(*cls._STRUCT.unpack_from(data))


@dataclass
class RmRecord:
    """The bytes of one record."""

    data: bytes

    _SIZE: ClassVar[struct.Struct] = struct.Struct("<i")

    @property
    def size(self) -> int:
        """Number of bytes in the record."""
        return len(self.data)

    def serialize(self) -> bytes:
        """Encode as a 4-byte size followed by the data."""
        return self._SIZE.pack(self.size) + bytes(self.data)

    @classmethod
    def deserialize(cls, data: bytes) -> RmRecord:
        """Decode a record written by :meth:`serialize`."""
        if len(data) < cls._SIZE.size:
            raise ValueError("record data too short for its size field")
        (size,) = cls._SIZE.unpack_from(data)
        body = bytes(data[cls._SIZE.size:cls._SIZE.size + size])
        if size < 0 or len(body) != size:
            raise ValueError(f"record data truncated: expected {size} bytes")
        return cls(body)


class _PageHandle:
    """A page read into memory with views on its header, bitmap and slots."""

    def __init__(self, page_no: int, data: bytearray, file_hdr: RmFileHdr) -> None:
        self.page_no = page_no
        self.data = data
        self.hdr = RmPageHdr.unpack(data)
        self._record_size = file_hdr.record_size
        bitmap_start = RmPageHdr.SIZE
        self._slots_start = bitmap_start + file_hdr.bitmap_size
        self.bitmap = Bitmap(memoryview(data)[bitmap_start:self._slots_start])

    def slot(self, slot_no: int) -> slice:
        start = self._slots_start + slot_no * self._record_size
        return slice(start, start + self._record_size)


class RmFileHandle:
    """An open table file holding fixed-size records."""

    def __init__(self, file: BinaryIO, name: str = "") -> None:
        self._file = file
        self.name = name
        file.seek(RM_FILE_HDR_PAGE * PAGE_SIZE)
        self.file_hdr = RmFileHdr.unpack(file.read(RmFileHdr.SIZE))

    def __enter__(self) -> RmFileHandle:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        """True once the handle has been closed."""
        return self._file.closed

    def _save_file_hdr(self) -> None:
        self._file.seek(RM_FILE_HDR_PAGE * PAGE_SIZE)
        self._file.write(self.file_hdr.pack())

    def _fetch(self, page_no: int) -> _PageHandle:
        if page_no < 0 or page_no >= self.file_hdr.num_pages:
            raise PageNotExistError(self.name, page_no)
        self._file.seek(page_no * PAGE_SIZE)
        data = bytearray(self._file.read(PAGE_SIZE))
        data.extend(bytes(PAGE_SIZE - len(data)))
        return _PageHandle(page_no, data, self.file_hdr)

    def _store(self, page: _PageHandle) -> None:
        page.data[:RmPageHdr.SIZE] = page.hdr.pack()
        self._file.seek(page.page_no * PAGE_SIZE)
        self._file.write(page.data)

    def _check_slot(self, slot_no: int) -> None:
        if not 0 <= slot_no < self.file_hdr.num_records_per_page:
            raise IndexError(f"slot number out of range: {slot_no}")

    def _check_buf(self, buf: bytes) -> bytes:
        buf = bytes(buf)
        if len(buf) != self.file_hdr.record_size:
            raise ValueError(
                f"record must be {self.file_hdr.record_size} bytes, got {len(buf)}"
            )
        return buf

    def _new_page(self) -> _PageHandle:
        page_no = self.file_hdr.num_pages
        data = bytearray(PAGE_SIZE)
        data[:RmPageHdr.SIZE] = RmPageHdr(RM_NO_PAGE, 0).pack()
        self.file_hdr.num_pages += 1
        page = _PageHandle(page_no, data, self.file_hdr)
        # A fresh page has free slots, so it heads the free list.
        page.hdr.next_free_page_no = self.file_hdr.first_free_page_no
        self.file_hdr.first_free_page_no = page_no
        self._store(page)
        self._save_file_hdr()
        return page

    def _free_page(self) -> _PageHandle:
        if self.file_hdr.first_free_page_no == RM_NO_PAGE:
            return self._new_page()
        return self._fetch(self.file_hdr.first_free_page_no)

    def is_record(self, rid: Rid) -> bool:
        """True when a record is stored at ``rid``."""
        self._check_slot(rid.slot_no)
        return self._fetch(rid.page_no).bitmap.is_set(rid.slot_no)

    def get_record(self, rid: Rid) -> RmRecord:
        """Return the record stored at ``rid``."""
        self._check_slot(rid.slot_no)
        page = self._fetch(rid.page_no)
        return RmRecord(bytes(page.data[page.slot(rid.slot_no)]))

    def insert_record(self, buf: bytes) -> Rid:
        """Store ``buf`` in a free slot and return its location."""
        buf = self._check_buf(buf)
        page = self._free_page()
        slot_no = page.bitmap.first_bit(False, self.file_hdr.num_records_per_page)
        page.bitmap.set(slot_no)
        page.data[page.slot(slot_no)] = buf
        page.hdr.num_records += 1
        if page.hdr.num_records == self.file_hdr.num_records_per_page:
            self.file_hdr.first_free_page_no = page.hdr.next_free_page_no
            page.hdr.next_free_page_no = RM_NO_PAGE
            self._save_file_hdr()
        self._store(page)
        return Rid(page.page_no, slot_no)

    def delete_record(self, rid: Rid) -> None:
        """Remove the record stored at ``rid``."""
        self._check_slot(rid.slot_no)
        page = self._fetch(rid.page_no)
        was_full = page.hdr.num_records == self.file_hdr.num_records_per_page
        page.bitmap.reset(rid.slot_no)
        page.hdr.num_records -= 1
        if was_full and page.hdr.next_free_page_no == RM_NO_PAGE:
            page.hdr.next_free_page_no = self.file_hdr.first_free_page_no
            self.file_hdr.first_free_page_no = page.page_no
            self._save_file_hdr()
        self._store(page)

    def update_record(self, rid: Rid, buf: bytes) -> None:
        """Overwrite the record stored at ``rid`` with ``buf``."""
        buf = self._check_buf(buf)
        self._check_slot(rid.slot_no)
        page = self._fetch(rid.page_no)
        page.data[page.slot(rid.slot_no)] = buf
        self._store(page)

    def close(self) -> None:
        """Write the file header and close the file."""
        if self._file.closed:
            return
        self._save_file_hdr()
        self._file.flush()
        self._file.close()


class RmManager:
    """Creates, opens, closes and removes table files in a directory."""

    def __init__(self, directory) -> None:
        self.directory = Path(directory)

    def _path(self, filename: str) -> Path:
        return self.directory / filename

    def create_file(self, filename: str, record_size: int) -> None:
        """Create an empty table file for records of ``record_size`` bytes."""
        if record_size < 1 or record_size > RM_MAX_RECORD_SIZE:
            raise InvalidRecordSizeError(record_size)
        # header + (n + 7) / 8 + n * record_size <= PAGE_SIZE
        per_page = (BITMAP_WIDTH * (PAGE_SIZE - 1 - RmFileHdr.SIZE) + 1) // (
            1 + record_size * BITMAP_WIDTH
        )
        file_hdr = RmFileHdr(
            record_size=record_size,
            num_pages=1,
            num_records_per_page=per_page,
            first_free_page_no=RM_NO_PAGE,
            bitmap_size=(per_page + BITMAP_WIDTH - 1) // BITMAP_WIDTH,
        )
        with open(self._path(filename), "xb") as file:
            file.write(file_hdr.pack().ljust(PAGE_SIZE, b"\0"))

    def destroy_file(self, filename: str) -> None:
        """Remove a table file."""
        os.remove(self._path(filename))

    def open_file(self, filename: str) -> RmFileHandle:
        """Open a table file and return its handle."""
        file = open(self._path(filename), "r+b")
        try:
            return RmFileHandle(file, filename)
        except Exception:
            file.close()
            raise

    def close_file(self, file_handle: RmFileHandle) -> None:
        """Write back and close an open table file."""
        file_handle.close()


class RmScan:
    """Walks the occupied slots of a table file in page and slot order."""

    def __init__(self, file_handle: RmFileHandle) -> None:
        self._file_handle = file_handle
        self._rid = Rid(RM_FIRST_RECORD_PAGE, -1)
        self.next()

    def next(self) -> None:
        """Move to the next occupied slot, or to the end."""
        if self.is_end():
            raise PageNotExistError(self._file_handle.name, RM_NO_PAGE)
        hdr = self._file_handle.file_hdr
        per_page = hdr.num_records_per_page
        page_no, slot_no = self._rid.page_no, self._rid.slot_no
        while page_no < hdr.num_pages:
            page = self._file_handle._fetch(page_no)
            found = page.bitmap.next_bit(True, per_page, slot_no)
            if found < per_page:
                self._rid = Rid(page_no, found)
                return
            page_no += 1
            slot_no = -1
        self._rid = Rid(RM_NO_PAGE, -1)

    def is_end(self) -> bool:
        """True once every occupied slot has been visited."""
        return self._rid.page_no == RM_NO_PAGE

    def rid(self) -> Rid:
        """The location the scan currently points at."""
        return self._rid

    def __iter__(self) -> Iterator[Rid]:
        while not self.is_end():
            yield self._rid
            self.next()