from .blob_store import BlobStore, BlobStoreError, S3BlobStore

__all__ = ["BlobStore", "BlobStoreError", "S3BlobStore"]
