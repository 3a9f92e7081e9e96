import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from app.core.exceptions import InvalidInputError


def _upload(data: bytes, filename="proof.png", content_type="image/png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def _leftovers(storage):
    if not storage.upload_dir.exists():
        return []
    return sorted(p.name for p in storage.upload_dir.iterdir())


def test_save_stores_under_generated_name(storage):
    stored = storage.save(_upload(b"\x89PNG data"), "payment")

    assert stored.ref.startswith("/uploads/payment_")
    assert stored.ref.endswith(".png")
    assert stored.path.read_bytes() == b"\x89PNG data"
    assert stored.size == 9
    assert stored.mime_type == "image/png"
    assert stored.original_name == "proof.png"
    assert _leftovers(storage) == [stored.path.name]


def test_extension_falls_back_to_mime_type(storage):
    stored = storage.save(_upload(b"%PDF-1.4", filename="scan", content_type="application/pdf"), "doc")
    assert stored.ref.endswith(".pdf")


def test_rejects_unsupported_type(storage):
    with pytest.raises(InvalidInputError):
        storage.save(_upload(b"MZ", filename="run.exe", content_type="application/x-msdownload"), "doc")
    assert _leftovers(storage) == []


def test_oversized_upload_leaves_no_temp_file(storage):
    too_big = b"x" * (storage.max_bytes + 1)

    with pytest.raises(InvalidInputError):
        storage.save(_upload(too_big), "payment")

    assert _leftovers(storage) == []


def test_delete_is_best_effort(storage):
    stored = storage.save(_upload(b"abc"), "doc")

    assert storage.delete(stored.ref) is True
    assert storage.delete(stored.ref) is False
    assert storage.delete(None) is False


def test_path_for_ignores_directories(storage):
    assert storage.path_for("/uploads/../../etc/passwd") == storage.upload_dir / "passwd"


def test_stored_removes_file_when_block_fails(storage):
    with pytest.raises(RuntimeError):
        with storage.stored(_upload(b"abc"), "payment") as stored:
            assert stored.path.exists()
            raise RuntimeError("database write failed")

    assert _leftovers(storage) == []


def test_stored_without_file_yields_none(storage):
    with storage.stored(None, "payment") as stored:
        assert stored is None
