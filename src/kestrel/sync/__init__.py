"""Sync - named external events into store publishes, offline batches out."""

from kestrel.sync.events import (
    SORENESS_CYCLE,
    TRANSLATORS,
    EventPayloadError,
    SyncLayer,
    UnknownEventError,
    translate_event,
)
from kestrel.sync.uploader import (
    HttpSyncUploader,
    SyncUploadError,
    SyncUploaderConfig,
    encode_offline_batch,
)

__all__ = [
    "EventPayloadError",
    "HttpSyncUploader",
    "SORENESS_CYCLE",
    "SyncLayer",
    "SyncUploadError",
    "SyncUploaderConfig",
    "TRANSLATORS",
    "UnknownEventError",
    "encode_offline_batch",
    "translate_event",
]
