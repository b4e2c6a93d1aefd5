from __future__ import annotations

import pytest

from nexus.archiver import archive_filename, build_archive, extract_archive
from nexus.errors import EmptyArchiveError, ValidationError
from nexus.generator import generate_site
from nexus.models import VirtualFile


def test_archive_round_trip_preserves_paths_and_bytes(site, components) -> None:
    files = generate_site(site, components)
    files.append(VirtualFile(path="images/pixel.bin", content=b"\x00\xff\x10"))

    restored = extract_archive(build_archive(files))

    assert {f.path: f.data for f in restored} == {f.path: f.data for f in files}


def test_archive_bytes_are_stable(site, components) -> None:
    files = generate_site(site, components)
    assert build_archive(files) == build_archive(files)


def test_empty_archive_is_rejected() -> None:
    with pytest.raises(EmptyArchiveError) as excinfo:
        build_archive([])
    assert excinfo.value.error_type == "empty_archive"


@pytest.mark.parametrize("path", ["/etc/passwd", "../outside.html", "pages/../../x.html", "", "a\\b.html"])
def test_unsafe_paths_are_rejected(path: str) -> None:
    with pytest.raises(ValidationError):
        build_archive([VirtualFile(path=path, content="x")])


def test_archive_filename_is_sanitized() -> None:
    assert archive_filename("Acme Bakery!") == "acme-bakery-netlify-ready.zip"
    assert archive_filename("!!!") == "site-netlify-ready.zip"
