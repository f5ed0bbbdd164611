"""Storage adapters for records and logs."""

from copydesk_core.ports.storage import RecordStoreProtocol
from copydesk_io.storage.filesystem import FileSystemLogStore, FileSystemRecordStore
from copydesk_io.storage.log_sink import (
    CompositeLogSink,
    ConsoleLogSink,
    InMemoryLogSink,
    NoopLogSink,
    StorageLogSink,
    build_log_sink,
)
from copydesk_io.storage.memory import InMemoryRecordStore
from copydesk_schemas.config import StorageConfig
from copydesk_schemas.primitives import StorageBackend


def build_record_store(config: StorageConfig) -> RecordStoreProtocol:
    """Build the record store selected by configuration.

    Args:
        config: Storage configuration.

    Returns:
        RecordStoreProtocol: Record store adapter.
    """
    if config.backend == StorageBackend.FILESYSTEM and config.root_dir:
        return FileSystemRecordStore(config.root_dir, lease_ttl_s=config.lease_ttl_s)
    return InMemoryRecordStore(lease_ttl_s=config.lease_ttl_s)


__all__ = [
    "CompositeLogSink",
    "ConsoleLogSink",
    "FileSystemLogStore",
    "FileSystemRecordStore",
    "InMemoryLogSink",
    "InMemoryRecordStore",
    "NoopLogSink",
    "StorageLogSink",
    "build_log_sink",
    "build_record_store",
]
