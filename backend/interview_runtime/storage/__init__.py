from interview_runtime.storage.blob_store import (
    LocalBlobStore,
    chunk_blob_name,
    get_blob_store,
    proctor_photo_blob_name,
)

__all__ = ["LocalBlobStore", "chunk_blob_name", "get_blob_store", "proctor_photo_blob_name"]
