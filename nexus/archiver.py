"""
Zip packaging for generated sites
"""

import io
import logging
import posixpath
import zipfile
from typing import Iterable, List

from .errors import EmptyArchiveError, ValidationError
from .models import VirtualFile
from .validation import sanitize_site_name

logger = logging.getLogger(__name__)

# Fixed entry timestamp so identical files always produce identical archives
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


def _check_path(path: str) -> None:
    if not path or path.startswith('/') or '\\' in path:
        raise ValidationError(f'Invalid archive path: {path!r}')
    if '..' in posixpath.normpath(path).split('/'):
        raise ValidationError(f'Archive path escapes the site root: {path!r}')


def build_archive(files: Iterable[VirtualFile]) -> bytes:
    """
    Pack virtual files into an in-memory deflate zip.

    Paths are stored exactly as given.

    Args:
        files: Files to pack

    Returns:
        Archive bytes

    Raises:
        EmptyArchiveError: if no file was added
        ValidationError: on absolute or parent-relative paths
    """
    buffer = io.BytesIO()
    count = 0

    with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as zip_file:
        for file in files:
            _check_path(file.path)
            info = zipfile.ZipInfo(file.path, date_time=_ZIP_EPOCH)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            zip_file.writestr(info, file.data)
            count += 1

    if count == 0:
        raise EmptyArchiveError()

    data = buffer.getvalue()
    logger.info("Built archive with %d files (%.2f KB)", count, len(data) / 1024)
    return data


def extract_archive(data: bytes) -> List[VirtualFile]:
    """Read an archive back into virtual files, in archive order"""
    with zipfile.ZipFile(io.BytesIO(data)) as zip_file:
        return [
            VirtualFile(path=info.filename, content=zip_file.read(info))
            for info in zip_file.infolist()
            if not info.is_dir()
        ]


def archive_filename(site_name: str) -> str:
    return f"{sanitize_site_name(site_name) or 'site'}-netlify-ready.zip"
