from .client import AttachmentStoreClient, UploadedAttachment, storage_name

__all__ = ["AttachmentStoreClient", "UploadedAttachment", "storage_name"]
