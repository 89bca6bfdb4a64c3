"""
Receipt file lifecycle on the upload directory.

Uploaded receipts are stored under ``UPLOAD_DIR`` as ``<uuid4><extension>``
and referenced from transactions as ``/uploads/<filename>``. Uploads are
validated (type, size) before anything is written, so a rejected upload
leaves no file behind.
"""

import logging
import os
import uuid

from django.conf import settings
from django.core.files.storage import FileSystemStorage
from django.utils import timezone

from core.exceptions import (
    FileDeleteError,
    FileTooLarge,
    InvalidFilename,
    InvalidFileType,
    NoFileUploaded,
    ResourceNotFound,
    UnexpectedFile,
)

logger = logging.getLogger(__name__)

UPLOAD_FIELD = "file"

# Extension -> content type used when streaming a stored receipt
CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def filename_from_url(url):
    """Last path segment of a receipt URL (``/uploads/abc.pdf`` -> ``abc.pdf``)."""
    if not url:
        return ""
    return str(url).rstrip("/").rsplit("/", 1)[-1]


def content_type_for(filename):
    return CONTENT_TYPES.get(os.path.splitext(filename)[1].lower(), DEFAULT_CONTENT_TYPE)


class ReceiptService:
    """
    Stores, describes, streams and deletes receipt files.

    Args:
        storage: Optional Django storage; defaults to ``FileSystemStorage``
            rooted at ``UPLOAD_DIR`` and served under ``MEDIA_URL``
    """

    def __init__(self, storage=None):
        self.storage = storage or FileSystemStorage(
            location=settings.UPLOAD_DIR, base_url=settings.MEDIA_URL
        )

    # -------------------------------------------------------------------
    # UPLOAD
    # -------------------------------------------------------------------

    def upload(self, actor, files):
        """
        Validate and store a single uploaded receipt.

        Args:
            actor: Authenticated uploader
            files: ``request.FILES``; exactly one file under the ``file`` field

        Returns:
            dict: id, filename, originalName, mimetype, size, url, uploadedBy, uploadedAt

        Raises:
            NoFileUploaded: No ``file`` part
            UnexpectedFile: Additional file parts or several files under ``file``
            InvalidFileType: Content type outside ``ALLOWED_FILE_TYPES``
            FileTooLarge: Larger than ``MAX_FILE_SIZE`` bytes
        """
        if UPLOAD_FIELD not in files:
            if files:
                raise UnexpectedFile(f"Unexpected file field: {next(iter(files))}")
            raise NoFileUploaded()

        extra_fields = [name for name in files if name != UPLOAD_FIELD]
        if extra_fields or len(files.getlist(UPLOAD_FIELD)) > 1:
            raise UnexpectedFile("Only one file may be uploaded, in the 'file' field")

        upload = files[UPLOAD_FIELD]
        content_type = upload.content_type
        if content_type not in settings.ALLOWED_FILE_TYPES:
            logger.warning(
                "Receipt upload rejected: file type",
                extra={
                    "user_id": str(actor.id),
                    "content_type": content_type,
                    "action": "receipt_upload_rejected",
                    "component": "ReceiptService",
                    "severity": "low",
                },
            )
            raise InvalidFileType(f"File type {content_type} is not allowed")

        if upload.size > settings.MAX_FILE_SIZE:
            logger.warning(
                "Receipt upload rejected: size",
                extra={
                    "user_id": str(actor.id),
                    "size": upload.size,
                    "max_size": settings.MAX_FILE_SIZE,
                    "action": "receipt_upload_rejected",
                    "component": "ReceiptService",
                    "severity": "low",
                },
            )
            raise FileTooLarge(
                f"File too large. Maximum size is {settings.MAX_FILE_SIZE} bytes"
            )

        extension = os.path.splitext(upload.name)[1]
        filename = self.storage.save(f"{uuid.uuid4()}{extension}", upload)

        logger.info(
            "Receipt uploaded",
            extra={
                "user_id": str(actor.id),
                "receipt_filename": filename,
                "size": upload.size,
                "action": "receipt_uploaded",
                "component": "ReceiptService",
            },
        )

        return {
            "id": str(uuid.uuid4()),
            "filename": filename,
            "originalName": upload.name,
            "mimetype": content_type,
            "size": upload.size,
            "url": self.url_for(filename),
            "uploadedBy": str(actor.id),
            "uploadedAt": timezone.now().isoformat(),
        }

    # -------------------------------------------------------------------
    # INSPECTION
    # -------------------------------------------------------------------

    def list_files(self):
        try:
            _, filenames = self.storage.listdir("")
        except FileNotFoundError:
            return []

        files = []
        for filename in sorted(filenames):
            try:
                files.append(self._describe(filename))
            except OSError:
                continue
        return files

    def stat(self, filename):
        self._check_filename(filename)
        self._require_file(filename)
        return self._describe(filename)

    def open(self, filename):
        """
        Open a stored receipt for streaming.

        Returns:
            tuple: ``(file handle, content type, size)``
        """
        self._check_filename(filename)
        self._require_file(filename)
        handle = self.storage.open(filename, "rb")
        return handle, content_type_for(filename), self.storage.size(filename)

    def url_for(self, filename):
        return f"{settings.MEDIA_URL.rstrip('/')}/{filename}"

    # -------------------------------------------------------------------
    # DELETION
    # -------------------------------------------------------------------

    def delete(self, filename):
        """
        Delete a stored receipt by name.

        Raises:
            InvalidFilename: Path traversal attempt
            ResourceNotFound: ``FILE_NOT_FOUND``
            FileDeleteError: The file system refused the delete
        """
        self._check_filename(filename)
        self._require_file(filename)
        self._remove(filename)

    def remove_attached(self, url):
        """Delete the file behind a transaction's receipt URL; a missing file is not an error."""
        filename = filename_from_url(url)
        self._check_filename(filename)
        self._remove(filename)

    def discard(self, url):
        """
        Best-effort delete of a superseded receipt.

        Failures are logged and swallowed so the surrounding database work
        stands.
        """
        filename = filename_from_url(url)
        if not self._is_safe_filename(filename):
            logger.warning(
                "Skipped discarding receipt with unsafe name",
                extra={
                    "receipt_url": url,
                    "action": "receipt_discard_skipped",
                    "component": "ReceiptService",
                    "severity": "medium",
                },
            )
            return False

        try:
            self.storage.delete(filename)
        except OSError as e:
            logger.warning(
                "Failed to delete receipt file",
                extra={
                    "receipt_filename": filename,
                    "error_message": str(e),
                    "action": "receipt_discard_failed",
                    "component": "ReceiptService",
                    "severity": "medium",
                },
            )
            return False

        logger.info(
            "Receipt file deleted",
            extra={
                "receipt_filename": filename,
                "action": "receipt_discarded",
                "component": "ReceiptService",
            },
        )
        return True

    # -------------------------------------------------------------------
    # HELPERS
    # -------------------------------------------------------------------

    def _remove(self, filename):
        try:
            self.storage.delete(filename)
        except OSError as e:
            logger.error(
                "Failed to delete receipt file",
                extra={
                    "receipt_filename": filename,
                    "error_message": str(e),
                    "action": "receipt_delete_failed",
                    "component": "ReceiptService",
                    "severity": "high",
                },
            )
            raise FileDeleteError()

        logger.info(
            "Receipt file deleted",
            extra={
                "receipt_filename": filename,
                "action": "receipt_deleted",
                "component": "ReceiptService",
            },
        )

    def _describe(self, filename):
        return {
            "filename": filename,
            "size": self.storage.size(filename),
            "created": self.storage.get_created_time(filename),
            "modified": self.storage.get_modified_time(filename),
            "url": self.url_for(filename),
        }

    def _require_file(self, filename):
        if not self.storage.exists(filename):
            raise ResourceNotFound("File not found", "FILE_NOT_FOUND")

    @staticmethod
    def _is_safe_filename(filename):
        return bool(filename) and not any(part in filename for part in ("..", "/", "\\"))

    def _check_filename(self, filename):
        if not self._is_safe_filename(filename):
            raise InvalidFilename()
