# rmdb

Parts of a small teaching database engine, written in plain Python with no
third-party dependencies.

## What is in the package

- **SQL text scanning**
  - `rmdb.patterns` holds the lexical rules (`Rule`). `match_initial` and
    `match_comment` return the longest `Match` at a position, either outside
    or inside a block comment.
  - `rmdb.scanner.Scanner` walks a whole text. It yields each `Match`
    together with its `rmdb.locations.Location`, and it switches its
    `StartState` when it enters or leaves a `/* ... */` comment.
- **Record storage**
  - `rmdb.record` stores fixed-size records in paged files, 4096 bytes per
    page. `RmManager` creates, opens, closes and removes table files in a
    directory. `RmFileHandle` inserts, reads, updates and deletes records
    addressed by `Rid`. `RmScan` visits every occupied slot.
  - Record sizes from 1 to 512 bytes are accepted; other sizes raise
    `InvalidRecordSizeError`. A page number outside the file raises
    `PageNotExistError`.
  - Slot occupancy is tracked with `rmdb.bitmap.Bitmap`.
- **Frame replacement**
  - `rmdb.replacer.LRUReplacer` evicts the frame that was unpinned longest
    ago. It holds at most `num_pages` frames.
- **Write-ahead log records**
  - `rmdb.log` defines `LogType`, `BeginLogRecord` and `InsertLogRecord`,
    each with a binary `serialize` / `LogRecord.deserialize` round trip.
  - `LogBuffer` is a fixed-size buffer that serialized records are appended
    to. Calling `append` when the data does not fit raises `BufferError`.

## What it does not do

- There is no SQL parser: the scanner reports the raw matches (keywords,
  identifiers, literals, operators), but nothing turns them into statements
  or a syntax tree.
- Nothing executes queries, and there is no command-line shell or server.
- Record files are read and written page by page straight from disk. There
  is no buffer pool; `LRUReplacer` is a standalone policy object.
- Log records can be built, encoded and buffered, but nothing writes the
  log to disk or replays it for recovery.

## Installing

```
pip install .
```

For the tests, install with the `test` extra and run pytest:

```
pip install ".[test]"
pytest
```

## Examples

Scanning SQL text:

```python
from rmdb.patterns import Rule
from rmdb.scanner import Scanner

for match, location in Scanner("select * from tb where a = 1;"):
    if match.rule not in (Rule.WHITESPACE, Rule.NEWLINE):
        print(match.rule.name, repr(match.text), location.first_column)
```

Storing and scanning records. The directory must already exist:

```python
from rmdb.record import RmManager, RmScan

manager = RmManager("data")
manager.create_file("tb", 8)
handle = manager.open_file("tb")
rid = handle.insert_record(b"abcdefgh")
print(handle.get_record(rid).data)  # b'abcdefgh'
for rid in RmScan(handle):
    print(rid)
manager.close_file(handle)
```

Picking a frame to evict:

```python
from rmdb.replacer import LRUReplacer

replacer = LRUReplacer(3)
replacer.unpin(1)
replacer.unpin(2)
print(replacer.victim())  # 1, the frame unpinned longest ago
```

Encoding a log record:

```python
from rmdb.log import InsertLogRecord, LogBuffer, LogRecord
from rmdb.record import Rid, RmRecord

record = InsertLogRecord(
    log_tid=1, insert_value=RmRecord(b"abc"), rid=Rid(1, 0), table_name="tb"
)
data = record.serialize()
print(LogRecord.deserialize(data) == record)  # True

buffer = LogBuffer()
buffer.append(data)
print(buffer.offset == len(data))  # True
```