"""Write-ahead log records and the in-memory log buffer."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from datetime import timedelta
from enum import IntEnum
from typing import Any, ClassVar

from rmdb.record import PAGE_SIZE, RM_NO_PAGE, Rid, RmRecord

INVALID_LSN = -1
INVALID_TXN_ID = -1
LOG_BUFFER_SIZE = 1024 * PAGE_SIZE
FLUSH_TIMEOUT = timedelta(seconds=3)

_INT_SIZE = struct.calcsize("<i")

OFFSET_LOG_TYPE = 0
OFFSET_LSN = OFFSET_LOG_TYPE + _INT_SIZE
OFFSET_LOG_TOT_LEN = OFFSET_LSN + _INT_SIZE
OFFSET_LOG_TID = OFFSET_LOG_TOT_LEN + _INT_SIZE
OFFSET_PREV_LSN = OFFSET_LOG_TID + _INT_SIZE
OFFSET_LOG_DATA = OFFSET_PREV_LSN + _INT_SIZE
LOG_HEADER_SIZE = OFFSET_LOG_DATA

# log type, lsn, total length, transaction id, previous lsn
_HEADER = struct.Struct("<iiIii")
_RID = struct.Struct("<ii")
_NAME_SIZE = struct.Struct("<Q")


class LogType(IntEnum):
    """The operation a log record describes."""

    UPDATE = 0
    INSERT = 1
    DELETE = 2
    BEGIN = 3
    COMMIT = 4
    ABORT = 5


@dataclass(kw_only=True)
class LogRecord:
    """A log record: the common header shared by every kind of record."""

    log_type: LogType
    lsn: int = INVALID_LSN
    log_tid: int = INVALID_TXN_ID
    prev_lsn: int = INVALID_LSN

    _EXPECTED_TYPE: ClassVar[LogType | None] = None

    def __post_init__(self) -> None:
        self.log_type = LogType(self.log_type)
        expected = self._EXPECTED_TYPE
        if expected is not None and self.log_type is not expected:
            raise ValueError(
                f"{type(self).__name__} must have log type {expected.name}, "
                f"got {self.log_type.name}"
            )

    def _payload(self) -> bytes:
        return b""

    @classmethod
    def _from_payload(cls, header: dict[str, Any], payload: bytes) -> LogRecord:
        if payload:
            raise ValueError(
                f"unexpected {len(payload)} payload bytes for log type "
                f"{header['log_type'].name}"
            )
        return cls(**header)

    @property
    def log_tot_len(self) -> int:
        """Length in bytes of the serialized record."""
        return LOG_HEADER_SIZE + len(self._payload())

    def serialize(self) -> bytes:
        """Encode the record: header followed by its payload."""
        payload = self._payload()
        header = _HEADER.pack(
            int(self.log_type),
            self.lsn,
            LOG_HEADER_SIZE + len(payload),
            self.log_tid,
            self.prev_lsn,
        )
        return header + payload

    @classmethod
    def deserialize(cls, data: bytes) -> LogRecord:
        """Decode one record from the start of ``data``.

        Called on :class:`LogRecord` itself, the record class is chosen by
        the log type found in the header; called on a subclass, the header
        must carry that subclass's log type.
        """
        if len(data) < LOG_HEADER_SIZE:
            raise ValueError(
                f"log record needs at least {LOG_HEADER_SIZE} bytes, got {len(data)}"
            )
        type_code, lsn, tot_len, tid, prev_lsn = _HEADER.unpack_from(data)
        try:
            log_type = LogType(type_code)
        except ValueError:
            raise ValueError(f"unknown log type {type_code}") from None
        if tot_len < LOG_HEADER_SIZE or tot_len > len(data):
            raise ValueError(
                f"log record length {tot_len} does not fit in {len(data)} bytes"
            )
        record_class = _RECORD_CLASSES.get(log_type, LogRecord)
        if cls is not LogRecord and record_class is not cls:
            raise ValueError(
                f"log type {log_type.name} cannot be read as {cls.__name__}"
            )
        header = {
            "log_type": log_type,
            "lsn": lsn,
            "log_tid": tid,
            "prev_lsn": prev_lsn,
        }
        return record_class._from_payload(header, bytes(data[LOG_HEADER_SIZE:tot_len]))

    def format(self) -> str:
        """Describe the record in readable lines."""
        return "\n".join(
            [
                "Print Log Record:",
                f"log_type_: {self.log_type.name}",
                f"lsn: {self.lsn}",
                f"log_tot_len: {self.log_tot_len}",
                f"log_tid: {self.log_tid}",
                f"prev_lsn: {self.prev_lsn}",
            ]
        )


@dataclass(kw_only=True)
class BeginLogRecord(LogRecord):
    """Start of a transaction."""

    log_type: LogType = LogType.BEGIN

    _EXPECTED_TYPE: ClassVar[LogType | None] = LogType.BEGIN


@dataclass(kw_only=True)
class InsertLogRecord(LogRecord):
    """Insertion of a record into a table."""

    log_type: LogType = LogType.INSERT
    insert_value: RmRecord = field(default_factory=lambda: RmRecord(b""))
    rid: Rid = field(default_factory=lambda: Rid(RM_NO_PAGE, -1))
    table_name: str = ""

    _EXPECTED_TYPE: ClassVar[LogType | None] = LogType.INSERT

    def _payload(self) -> bytes:
        name = self.table_name.encode("utf-8")
        return b"".join(
            [
                self.insert_value.serialize(),
                _RID.pack(self.rid.page_no, self.rid.slot_no),
                _NAME_SIZE.pack(len(name)),
                name,
            ]
        )

    @classmethod
    def _from_payload(cls, header: dict[str, Any], payload: bytes) -> LogRecord:
        value = RmRecord.deserialize(payload)
        offset = _INT_SIZE + value.size
        if len(payload) < offset + _RID.size + _NAME_SIZE.size:
            raise ValueError("insert log record truncated")
        page_no, slot_no = _RID.unpack_from(payload, offset)
        offset += _RID.size
        (name_size,) = _NAME_SIZE.unpack_from(payload, offset)
        offset += _NAME_SIZE.size
        name = payload[offset:]
        if len(name) != name_size:
            raise ValueError(
                f"table name should be {name_size} bytes, found {len(name)}"
            )
        return cls(
            **header,
            insert_value=value,
            rid=Rid(page_no, slot_no),
            table_name=name.decode("utf-8"),
        )

    def format(self) -> str:
        value = self.insert_value.data.split(b"\0", 1)[0].decode(
            "utf-8", errors="replace"
        )
        return "\n".join(
            [
                "insert record",
                super().format(),
                f"insert_value: {value}",
                f"insert rid: {self.rid.page_no}, {self.rid.slot_no}",
                f"table name: {self.table_name}",
            ]
        )


_RECORD_CLASSES: dict[LogType, type[LogRecord]] = {
    LogType.BEGIN: BeginLogRecord,
    LogType.INSERT: InsertLogRecord,
}


class LogBuffer:
    """A single fixed-size buffer that serialized log records are appended to."""

    def __init__(self, size: int = LOG_BUFFER_SIZE) -> None:
        if size < 0:
            raise ValueError(f"negative buffer size: {size}")
        self.size = size
        self.buffer = bytearray(size + 1)
        self.offset = 0

    def is_full(self, append_size: int) -> bool:
        """True when ``append_size`` more bytes would not fit."""
        return self.offset + append_size > self.size

    def append(self, data: bytes) -> int:
        """Copy ``data`` into the buffer and return the offset it starts at."""
        data = bytes(data)
        if self.is_full(len(data)):
            raise BufferError(
                f"log buffer cannot take {len(data)} more bytes "
                f"({self.offset} of {self.size} used)"
            )
        start = self.offset
        self.buffer[start:start + len(data)] = data
        self.offset += len(data)
        return start

    @property
    def data(self) -> bytes:
        """The bytes written so far."""
        return bytes(self.buffer[:self.offset])