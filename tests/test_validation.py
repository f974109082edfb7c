"""Payload preflight validation tests."""

import pytest

from tnshim import MAX_ATTACHMENT_SIZE
from tnshim.errors import (
    AttachmentNotFound,
    AttachmentTooLarge,
    EmptyMessage,
    InvalidOpenURL,
    InvalidWaitSeconds,
    ResultStatus,
)
from tnshim.validation import file_url_to_path, validate

from tests.helpers import make_payload


@pytest.fixture
def image(tmp_path):
    path = tmp_path / "img.png"
    path.write_bytes(b"\x89PNG" + b"\x00" * 16)
    return path


def test_valid_minimal_payload():
    validate(make_payload())


@pytest.mark.parametrize("message", ["", "   ", "\n\t "])
def test_empty_message(message):
    with pytest.raises(EmptyMessage):
        validate(make_payload(message))


@pytest.mark.parametrize("url", [
    "https://example.com",
    "HTTP://example.com/x",
    "file:///tmp/report.html",
])
def test_open_url_allowed(url):
    validate(make_payload(open_url=url))


@pytest.mark.parametrize("url", ["example.com", "ftp://example.com", "javascript://x", ""])
def test_open_url_rejected(url):
    with pytest.raises(InvalidOpenURL) as exc:
        validate(make_payload(open_url=url))
    assert exc.value.value == url


def test_remote_attachment_not_checked_locally():
    validate(make_payload(content_image="https://example.com/missing.png"))


def test_local_attachment(image):
    validate(make_payload(content_image=str(image)))


def test_file_url_attachment(image):
    validate(make_payload(content_image=image.as_uri()))


def test_missing_attachment(tmp_path):
    missing = str(tmp_path / "nope.png")
    with pytest.raises(AttachmentNotFound) as exc:
        validate(make_payload(content_image=missing))
    assert exc.value.path == missing


def test_missing_file_url_reports_resolved_path(tmp_path):
    missing = tmp_path / "nope.png"
    with pytest.raises(AttachmentNotFound) as exc:
        validate(make_payload(content_image=missing.as_uri()))
    assert exc.value.path == str(missing)


def test_directory_attachment(tmp_path):
    with pytest.raises(AttachmentNotFound):
        validate(make_payload(content_image=str(tmp_path)))


def test_attachment_too_large_echoes_sizes(tmp_path):
    big = tmp_path / "big.bin"
    size = 11 * 1024 * 1024
    with open(big, "wb") as f:
        f.truncate(size)

    with pytest.raises(AttachmentTooLarge) as exc:
        validate(make_payload(content_image=str(big)))

    err = exc.value
    assert err.size == size
    assert err.max_size == MAX_ATTACHMENT_SIZE
    assert f"{size} > {MAX_ATTACHMENT_SIZE} bytes" in str(err)


def test_attachment_at_exact_limit_is_allowed(tmp_path):
    path = tmp_path / "limit.bin"
    path.write_bytes(b"x" * 64)
    validate(make_payload(content_image=str(path)), max_attachment_size=64)


@pytest.mark.parametrize("wait", [0, -3])
def test_invalid_wait_seconds(wait):
    with pytest.raises(InvalidWaitSeconds):
        validate(make_payload(wait_seconds=wait))


def test_positive_wait_seconds():
    validate(make_payload(wait_seconds=30))


def test_empty_message_checked_before_attachment(tmp_path):
    with pytest.raises(EmptyMessage):
        validate(make_payload("", content_image=str(tmp_path / "missing.png")))


def test_open_url_checked_before_attachment(tmp_path):
    with pytest.raises(InvalidOpenURL):
        validate(make_payload(open_url="nope", content_image=str(tmp_path / "missing.png")))


def test_attachment_checked_before_wait(tmp_path):
    with pytest.raises(AttachmentNotFound):
        validate(make_payload(content_image=str(tmp_path / "missing.png"), wait_seconds=0))


def test_validation_errors_share_status():
    assert EmptyMessage().status == ResultStatus.INVALID_PAYLOAD


def test_file_url_with_remote_host_is_refused():
    with pytest.raises(ValueError):
        file_url_to_path("file://server/share/x.png")
