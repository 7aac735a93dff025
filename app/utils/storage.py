"""
File storage for lesson media and avatars.

Uploads are stored as "{uuid4}-{filename}" under ``uploads/<folder>/``,
either on local disk below UPLOAD_ROOT (served as /uploads/...) or in an
S3 bucket when STORAGE_BACKEND=s3.
"""

import logging
import os
import uuid
from collections import namedtuple

import boto3
from botocore.exceptions import ClientError
from flask import current_app
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

# kind -> (allowed extensions, folder, config key holding the size limit)
UPLOAD_KINDS = {
    "audio": ({"mp3"}, "audio", "MAX_AUDIO_SIZE"),
    "doc": ({"pdf"}, "docs", "MAX_DOC_SIZE"),
    "avatar": ({"jpg", "jpeg", "png", "webp"}, "avatars", "MAX_AVATAR_SIZE"),
}

CONTENT_TYPES = {
    'mp3': 'audio/mpeg',
    'pdf': 'application/pdf',
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'webp': 'image/webp',
}

StoredFile = namedtuple("StoredFile", ["url", "path", "original_name", "size"])


class UploadError(ValueError):
    """Raised for uploads rejected before anything is written."""


def allowed_file(filename, allowed_ext):
    return "." in filename and filename.rsplit(".", 1)[1].lower() in allowed_ext


def file_size(file_obj):
    stream = file_obj.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


def validate_upload(file_obj, kind):
    """Check extension and size of an upload; raises UploadError."""
    if kind not in UPLOAD_KINDS:
        raise UploadError("Invalid file type")
    if file_obj is None or not file_obj.filename:
        raise UploadError("No file provided")

    extensions, _, size_key = UPLOAD_KINDS[kind]
    if not allowed_file(file_obj.filename, extensions):
        allowed = ", ".join(f".{ext}" for ext in sorted(extensions))
        raise UploadError(f"Invalid file extension. Allowed: {allowed}")

    max_size = current_app.config[size_key]
    if file_size(file_obj) > max_size:
        raise UploadError(f"File size too large. Max {max_size // (1024 * 1024)}MB.")


def stored_name(original_name):
    """Name a stored upload {uuid4}-{safe stem}.{ext}, keeping the extension of non-ASCII names."""
    stem, dot, extension = original_name.rpartition(".")
    if not dot:
        stem, extension = original_name, ""

    safe_stem = secure_filename(stem) or "file"
    safe_extension = secure_filename(extension).lower()
    if safe_extension:
        return f"{uuid.uuid4()}-{safe_stem}.{safe_extension}"
    return f"{uuid.uuid4()}-{safe_stem}"


def _content_type(filename):
    extension = filename.rsplit('.', 1)[1].lower() if '.' in filename else ''
    return CONTENT_TYPES.get(extension, 'application/octet-stream')


class LocalStorage:
    """Writes below ``root`` and hands out /uploads/... URLs."""

    def __init__(self, root):
        self.root = root

    def path_for(self, url):
        relative = url.lstrip("/")
        if not relative.startswith("uploads/"):
            return None
        return os.path.join(self.root, *relative.split("/"))

    def save(self, file_obj, folder, original_name=None):
        original_name = original_name or file_obj.filename
        filename = stored_name(original_name)

        directory = os.path.join(self.root, "uploads", folder)
        os.makedirs(directory, exist_ok=True)
        path = os.path.join(directory, filename)
        file_obj.save(path)

        return StoredFile(
            url=f"/uploads/{folder}/{filename}",
            path=path,
            original_name=original_name,
            size=os.path.getsize(path),
        )

    def exists(self, url):
        path = self.path_for(url) if url else None
        return bool(path) and os.path.exists(path)

    def delete(self, url):
        """Remove the file behind ``url`` if it is ours and still there."""
        if not self.exists(url):
            return False
        os.remove(self.path_for(url))
        logger.info("Deleted stored file %s", url)
        return True


class S3Storage:
    """Same interface as LocalStorage, backed by an S3 bucket."""

    def __init__(self, config):
        self.s3_client = boto3.client(
            's3',
            aws_access_key_id=config.get("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=config.get("AWS_SECRET_ACCESS_KEY"),
            region_name=config.get("AWS_REGION")
        )
        self.bucket_name = config.get("AWS_S3_BUCKET_NAME")
        self.region = config.get("AWS_REGION")
        self.cloudfront_domain = config.get("AWS_CLOUDFRONT_DOMAIN")

    def _base_url(self):
        if self.cloudfront_domain:
            return f"https://{self.cloudfront_domain}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com"

    def key_for(self, url):
        base = self._base_url()
        if not url or not url.startswith(base):
            return None
        return url[len(base):].lstrip("/")

    def save(self, file_obj, folder, original_name=None):
        original_name = original_name or file_obj.filename
        filename = stored_name(original_name)
        file_key = f"uploads/{folder}/{filename}"
        size = file_size(file_obj)

        self.s3_client.upload_fileobj(
            file_obj.stream,
            self.bucket_name,
            file_key,
            ExtraArgs={
                'ContentType': _content_type(filename),
                'CacheControl': 'max-age=31536000',
            }
        )
        return StoredFile(
            url=f"{self._base_url()}/{file_key}",
            path=None,
            original_name=original_name,
            size=size,
        )

    def exists(self, url):
        file_key = self.key_for(url)
        if not file_key:
            return False
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=file_key)
            return True
        except ClientError:
            return False

    def delete(self, url):
        if not self.exists(url):
            return False
        self.s3_client.delete_object(Bucket=self.bucket_name, Key=self.key_for(url))
        logger.info("Deleted S3 object %s", url)
        return True


def get_storage():
    """Storage backend for the current app, created once per app."""
    storage = current_app.extensions.get("storage")
    if storage is None:
        if current_app.config.get("STORAGE_BACKEND") == "s3":
            storage = S3Storage(current_app.config)
        else:
            storage = LocalStorage(current_app.config["UPLOAD_ROOT"])
        current_app.extensions["storage"] = storage
    return storage


def discard(url):
    """Delete-if-exists that only logs on failure; used for superseded files."""
    if not url:
        return False
    try:
        return get_storage().delete(url)
    except (OSError, ClientError) as e:
        logger.warning("Could not delete %s: %s", url, e)
        return False
