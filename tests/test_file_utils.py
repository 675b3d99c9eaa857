"""
Tests for upload validation, storage path generation and signed URLs.
"""
import re

import pytest

from core.config import settings
from core.exceptions import BadRequestException, ResourceNotFoundException, StorageException
from core.file_utils import (
    create_signed_url, delete_stored_file, generate_file_path, split_extension,
    validate_file, validate_storage_path
)
from core.storage import InMemoryStorageClient, StorageError

PATH_RE = re.compile(r"^example\.edu/user-1/\d+_[a-z0-9]{13}_[A-Za-z0-9_]+(\.[a-z0-9]+)?$")


def test_split_extension():
    assert split_extension("Lecture.PDF") == "pdf"
    assert split_extension("archive.tar.gz") == "gz"
    assert split_extension("README") == ""
    assert split_extension(".hidden") == ""


def test_generated_path_layout():
    path = generate_file_path("user-1", "Week 1: Limits & Series.pdf", "example.edu")
    assert PATH_RE.match(path)
    assert path.endswith("_Week_1__Limits___Series.pdf")


def test_generated_paths_differ_for_same_name():
    paths = {generate_file_path("user-1", "notes.pdf", "example.edu") for _ in range(20)}
    assert len(paths) == 20


def test_generated_path_defaults():
    path = generate_file_path("user-1", "")
    assert path.startswith("general/user-1/")
    assert "_file" in path


def test_generated_path_truncates_long_names():
    path = generate_file_path("user-1", "a" * 200 + ".docx", "example.edu")
    assert path.endswith("_" + "a" * 50 + ".docx")


def test_generated_path_is_always_valid():
    for name in ["../../etc/passwd", "x//y.pdf", "naïve résumé.pdf", ""]:
        assert validate_storage_path(generate_file_path("user-1", name, "example.edu"))


def test_validate_file_accepts_allowed_type():
    assert validate_file("slides.pptx", 1024).is_valid


def test_validate_file_rejects_oversize():
    result = validate_file("big.pdf", settings.max_file_size + 1)
    assert not result.is_valid
    assert result.error == "File size exceeds 10MB limit"


def test_validate_file_rejects_type():
    result = validate_file("virus.exe", 10)
    assert not result.is_valid
    assert result.error.startswith("File type .exe is not allowed. Allowed types: pdf, docx")


@pytest.mark.parametrize("path", ["", "a/../b", "a//b", "a b", "a/b?c", "%2e%2e/x"])
def test_invalid_storage_paths(path):
    assert not validate_storage_path(path)


def test_valid_storage_path():
    assert validate_storage_path("example.edu/user-1/1700000000000_abc_notes.pdf")


def test_signed_url_for_stored_object():
    storage = InMemoryStorageClient()
    storage.upload("a/b.pdf", b"data")
    url = create_signed_url(storage, "a/b.pdf", 60)
    assert "expires=60" in url


def test_signed_url_errors():
    storage = InMemoryStorageClient()
    with pytest.raises(BadRequestException):
        create_signed_url(storage, "../secret")
    with pytest.raises(ResourceNotFoundException):
        create_signed_url(storage, "missing.pdf")


class BrokenStorage(InMemoryStorageClient):
    def create_signed_url(self, path, expires_in=3600):
        raise StorageError("backend unavailable")

    def remove(self, paths):
        raise StorageError("backend unavailable")


def test_signed_url_backend_failure():
    with pytest.raises(StorageException):
        create_signed_url(BrokenStorage(), "a/b.pdf")


def test_delete_stored_file_reports_failure():
    storage = InMemoryStorageClient()
    storage.upload("a/b.pdf", b"data")
    assert delete_stored_file(storage, "a/b.pdf")
    assert not storage.exists("a/b.pdf")
    assert not delete_stored_file(BrokenStorage(), "a/b.pdf")
