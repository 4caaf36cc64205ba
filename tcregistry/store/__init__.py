"""Record store and its on-disk format."""

from tcregistry.store.locking import ReadWriteLock
from tcregistry.store.persistence import (
    StoreDocument,
    export_jsonl,
    import_jsonl,
    read_store,
    write_store,
)
from tcregistry.store.record_store import RecordStore, RecordView

__all__ = [
    "RecordStore",
    "RecordView",
    "ReadWriteLock",
    "StoreDocument",
    "read_store",
    "write_store",
    "export_jsonl",
    "import_jsonl",
]
