import struct
import zlib

import pytest
from fastapi.testclient import TestClient

import routers.reported_animals as reported_animals
import uploads
from conftest import build_app, build_settings, png_bytes, register
from errors import StorageError


def _files(settings):
    return sorted(p.name for p in settings.upload_dir.iterdir())


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    body = kind + data
    return struct.pack(">I", len(data)) + body + struct.pack(">I", zlib.crc32(body))


def huge_png_header(width=20000, height=20000) -> bytes:
    """A tiny PNG whose header claims a very large canvas."""
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", ihdr)
        + _png_chunk(b"IDAT", zlib.compress(b""))
        + _png_chunk(b"IEND", b"")
    )


def test_photo_is_stored_and_served(individual, settings, report_form):
    r = individual.post(
        "/api/reported-animals",
        data=report_form,
        files={"photo": ("dog.PNG", png_bytes(), "image/png")},
    )
    assert r.status_code == 201
    photo_url = r.json()["photoUrl"]
    assert photo_url.startswith("/uploads/photo-")
    assert photo_url.endswith(".png")
    assert _files(settings) == [photo_url.rsplit("/", 1)[1]]

    served = individual.get(photo_url)
    assert served.status_code == 200
    assert served.content == png_bytes()


def test_filenames_do_not_collide(individual, settings, report_form):
    for _ in range(3):
        individual.post(
            "/api/reported-animals",
            data=report_form,
            files={"photo": ("same.png", png_bytes(), "image/png")},
        )
    assert len(_files(settings)) == 3


def test_empty_file_field_means_no_photo(individual, settings, report_form):
    r = individual.post(
        "/api/reported-animals",
        data=report_form,
        files={"photo": ("", b"", "application/octet-stream")},
    )
    assert r.status_code == 201
    assert r.json()["photoUrl"] is None
    assert _files(settings) == []


def test_wrong_content_type_rejected(individual, settings, report_form):
    r = individual.post(
        "/api/reported-animals",
        data=report_form,
        files={"photo": ("notes.txt", b"hello there", "text/plain")},
    )
    assert r.status_code == 400
    assert "Invalid file type" in r.json()["detail"]
    assert _files(settings) == []
    assert individual.get("/api/reported-animals").json() == []


def test_bytes_must_really_be_an_image(individual, settings, report_form):
    r = individual.post(
        "/api/reported-animals",
        data=report_form,
        files={"photo": ("fake.png", b"definitely not a png", "image/png")},
    )
    assert r.status_code == 400
    assert _files(settings) == []


def test_image_claiming_huge_dimensions_rejected(individual, settings, report_form):
    r = individual.post(
        "/api/reported-animals",
        data=report_form,
        files={"photo": ("bomb.png", huge_png_header(), "image/png")},
    )
    assert r.status_code == 400
    assert "not a valid image" in r.json()["detail"]
    assert _files(settings) == []
    assert individual.get("/api/reported-animals").json() == []


def test_unexpected_failure_while_checking_removes_the_file(
    monkeypatch, individual, settings, report_form
):
    def broken_open(path):
        raise RuntimeError("decoder crashed")

    monkeypatch.setattr(uploads.Image, "open", broken_open)

    with pytest.raises(RuntimeError):
        individual.post(
            "/api/reported-animals",
            data=report_form,
            files={"photo": ("dog.png", png_bytes(), "image/png")},
        )
    assert _files(settings) == []


def test_oversized_upload_rejected(tmp_path, report_form):
    settings = build_settings(tmp_path, max_upload_bytes=16)
    client = TestClient(build_app(settings))
    register(client, "zoe")

    r = client.post(
        "/api/reported-animals",
        data=report_form,
        files={"photo": ("big.png", png_bytes((64, 64)), "image/png")},
    )
    assert r.status_code == 400
    assert "too large" in r.json()["detail"]
    assert _files(settings) == []


def test_invalid_fields_leave_no_file_behind(individual, settings, report_form):
    form = dict(report_form, description="short")
    r = individual.post(
        "/api/reported-animals",
        data=form,
        files={"photo": ("dog.png", png_bytes(), "image/png")},
    )
    assert r.status_code == 400
    assert _files(settings) == []


def test_failed_insert_discards_the_upload(monkeypatch, individual, settings, report_form):
    def failing_save(session, *records):
        raise StorageError()

    monkeypatch.setattr(reported_animals, "save", failing_save)

    r = individual.post(
        "/api/reported-animals",
        data=report_form,
        files={"photo": ("dog.png", png_bytes(), "image/png")},
    )
    assert r.status_code == 500
    assert r.json()["detail"] == "Storage failure"
    assert _files(settings) == []


def test_deleting_listing_removes_its_photo(ngo, settings, listing_form):
    r = ngo.post(
        "/api/adoptable-animals",
        data=listing_form,
        files={"photo": ("rex.png", png_bytes(), "image/png")},
    )
    assert r.status_code == 201
    assert len(_files(settings)) == 1

    assert ngo.delete(f"/api/adoptable-animals/{r.json()['id']}").status_code == 204
    assert _files(settings) == []
