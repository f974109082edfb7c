"""
TN Attachment Resolution

Turns a payload's `contentImage` reference into a local file the sink
can attach:

- http(s) URL  -> downloaded to a private temporary file
- file:// URL  -> resolved to its local path
- bare path    -> used directly

Every failure is reported as InvalidAttachment(reason).
"""

import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import requests

from .. import MAX_ATTACHMENT_SIZE
from ..errors import InvalidAttachment
from ..sink.base import Attachment
from ..validation import file_url_to_path, is_file_url, is_remote_reference


logger = logging.getLogger(__name__)

# Download timeout (seconds): connect, read
DEFAULT_FETCH_TIMEOUT = (5.0, 30.0)

# Download chunk size
DOWNLOAD_CHUNK = 64 * 1024

# Suffix for downloaded files
DOWNLOAD_SUFFIX = ".img"


class FetchError(Exception):
    """Remote attachment could not be downloaded."""
    pass


class HTTPAttachmentFetcher:
    """
    Downloads remote attachments with requests.

    Usage:
        fetcher = HTTPAttachmentFetcher()
        path = fetcher.fetch("https://example.com/logo.png")
    """

    def __init__(
        self,
        timeout=DEFAULT_FETCH_TIMEOUT,
        max_bytes: int = MAX_ATTACHMENT_SIZE,
        download_dir: Optional[Path] = None,
    ):
        """
        Args:
            timeout: requests timeout (seconds or (connect, read) tuple)
            max_bytes: Abort downloads larger than this
            download_dir: Directory for temporary files (default: system temp)
        """
        self._timeout = timeout
        self._max_bytes = max_bytes
        self._download_dir = download_dir

    def fetch(self, url: str) -> Path:
        """
        Download a URL to a private temporary file.

        Returns:
            Path of the downloaded file

        Raises:
            FetchError: On HTTP/network failure or oversized body
        """
        try:
            response = requests.get(url, timeout=self._timeout, stream=True)
        except requests.RequestException as e:
            raise FetchError(f"download failed: {e}")

        try:
            response.raise_for_status()
            fd, name = tempfile.mkstemp(
                prefix="tn-", suffix=DOWNLOAD_SUFFIX,
                dir=str(self._download_dir) if self._download_dir else None,
            )
            path = Path(name)
            received = 0
            try:
                with os.fdopen(fd, "wb") as out:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK):
                        received += len(chunk)
                        if received > self._max_bytes:
                            raise FetchError(
                                f"download exceeds {self._max_bytes} bytes: {url}"
                            )
                        out.write(chunk)
            except (FetchError, OSError, requests.RequestException):
                path.unlink(missing_ok=True)
                raise
        except requests.RequestException as e:
            raise FetchError(f"download failed: {e}")
        except OSError as e:
            raise FetchError(f"could not write download: {e}")
        finally:
            response.close()

        logger.debug(f"Fetched {url} -> {path} ({received} bytes)")
        return path


class AttachmentResolver:
    """
    Resolves contentImage references into Attachments.
    """

    def __init__(self, fetcher: Optional[HTTPAttachmentFetcher] = None):
        self._fetcher = fetcher or HTTPAttachmentFetcher()

    def resolve(self, ref: str) -> Attachment:
        """
        Resolve a reference to a local attachment.

        Raises:
            InvalidAttachment: Malformed URL, failed download or missing file
        """
        identifier = str(uuid.uuid4())

        if is_remote_reference(ref):
            parsed = urlparse(ref)
            if not parsed.netloc:
                raise InvalidAttachment(f"invalid URL: {ref}")
            try:
                path = self._fetcher.fetch(ref)
            except FetchError as e:
                raise InvalidAttachment(f"{e} ({ref})")
            return Attachment(identifier=identifier, path=path, temporary=True)

        if is_file_url(ref):
            try:
                path = file_url_to_path(ref)
            except ValueError:
                raise InvalidAttachment(f"invalid file URL: {ref}")
        else:
            path = Path(ref).expanduser()

        if not path.is_file():
            raise InvalidAttachment(f"attachment not found: {path}")

        return Attachment(identifier=identifier, path=path)
