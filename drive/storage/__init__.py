from drive.core.config import Settings
from drive.storage.blob_store import BlobStore, LocalBlobStore
from drive.storage.catalog_store import CatalogStore
from drive.storage.s3_blob_store import S3BlobStore


def build_blob_store(settings: Settings) -> BlobStore:
    if settings.blob_backend == "s3":
        return S3BlobStore.from_settings(settings)
    return LocalBlobStore(settings.files_dir)


__all__ = ["BlobStore", "CatalogStore", "LocalBlobStore", "S3BlobStore", "build_blob_store"]
