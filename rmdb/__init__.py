"""Pieces of a small relational database engine: SQL text scanning, paged record files, LRU frame replacement and write-ahead log records."""

__version__ = "0.1.0"