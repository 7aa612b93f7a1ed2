from unittest import mock

import pytest

from classroom.core.storage import CloudinaryStore, StoredFile
from classroom.models import AssignmentMaterial, Material


@pytest.mark.parametrize(
    "url, public_id, resource_type, delivery_type",
    [
        (
            "https://res.cloudinary.com/demo/raw/authenticated/s--abc123--/v1712/lms/materials/notes.pdf",
            "lms/materials/notes.pdf",
            "raw",
            "authenticated",
        ),
        (
            "https://res.cloudinary.com/demo/image/upload/v17/lms/photo.jpg?x=1",
            "lms/photo",
            "image",
            "upload",
        ),
        (
            "https://res.cloudinary.com/demo/video/private/lms/clip.mp4",
            "lms/clip.mp4",
            "video",
            "private",
        ),
    ],
)
def test_reference_from_url(url, public_id, resource_type, delivery_type) -> None:
    ref = StoredFile.from_url(url)

    assert ref is not None
    assert ref.public_id == public_id
    assert ref.resource_type == resource_type
    assert ref.delivery_type == delivery_type


@pytest.mark.parametrize(
    "url",
    [None, "", "https://example.org/files/notes.pdf", "https://res.cloudinary.com/demo/raw/fetch/notes.pdf"],
)
def test_non_store_urls_have_no_reference(url) -> None:
    assert StoredFile.from_url(url) is None


def test_rows_prefer_the_persisted_reference() -> None:
    row = Material(title="Week 1")
    row.attach_file(
        StoredFile(
            url="https://res.cloudinary.com/demo/raw/authenticated/v1/lms/other-name.pdf",
            public_id="lms/materials/week1.pdf",
            resource_type="raw",
            delivery_type="authenticated",
        )
    )
    assert row.stored_file().public_id == "lms/materials/week1.pdf"

    legacy = Material(title="Old", file_url="https://res.cloudinary.com/demo/raw/upload/v9/lms/old.pdf")
    assert legacy.stored_file().public_id == "lms/old.pdf"
    assert Material(title="No file").stored_file() is None


def test_link_materials_have_no_stored_file() -> None:
    link = AssignmentMaterial(title="Spec", kind="url", file_url="https://res.cloudinary.com/demo/raw/upload/v1/x.pdf")
    assert link.stored_file() is None


def test_cloudinary_store_passes_reference_fields(test_settings) -> None:
    store = CloudinaryStore(test_settings)
    ref = StoredFile(url="u", public_id="lms/a.pdf", resource_type="raw", delivery_type="authenticated")

    with mock.patch("cloudinary.uploader.destroy", return_value={"result": "ok"}) as destroy:
        assert store.delete(ref) == {"result": "ok"}

    destroy.assert_called_once()
    args, kwargs = destroy.call_args
    assert args == ("lms/a.pdf",)
    assert kwargs["resource_type"] == "raw"
    assert kwargs["type"] == "authenticated"
    assert kwargs["invalidate"] is True
    assert kwargs["cloud_name"] == "demo"


def test_public_urls_are_not_signed(test_settings) -> None:
    store = CloudinaryStore(test_settings)
    url = "https://res.cloudinary.com/demo/image/upload/v1/lms/logo.png"

    assert store.sign(url) == url
    assert store.sign("https://example.org/a.pdf") == "https://example.org/a.pdf"
