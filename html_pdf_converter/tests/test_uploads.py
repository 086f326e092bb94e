"""Tests for upload validation, base-name derivation and storage."""

import io

import pytest

from html_pdf_converter.services.uploads import (
    UploadRejected,
    base_name,
    discard,
    save_upload,
    validate_upload,
)

MB = 1024 * 1024


class TestBaseName:
    @pytest.mark.parametrize("filename, expected", [
        ("report.html", "report"),
        ("Q3.final.html", "Q3.final"),
        ("page.HTM", "page"),
        ("no_extension", "no_extension"),
        ("uploads/nested/report.html", "report"),
        ("C:\\Users\\me\\report.html", "report"),
        ("", "converted_document"),
        (".html", ".html"),
    ])
    def test_strips_extension_and_directories(self, filename, expected):
        assert base_name(filename) == expected


class TestValidateUpload:
    def test_accepts_html_extension(self):
        validate_upload("report.html", "application/octet-stream", 100, MB)

    def test_accepts_html_mime_with_other_extension(self):
        validate_upload("export.txt", "text/html; charset=utf-8", 100, MB)

    def test_rejects_other_types(self):
        with pytest.raises(UploadRejected) as exc:
            validate_upload("notes.txt", "text/plain", 100, MB)
        assert exc.value.status_code == 400
        assert "notes.txt" in str(exc.value)

    def test_rejects_missing_name(self):
        with pytest.raises(UploadRejected):
            validate_upload("", "text/html", 100, MB)

    def test_rejects_oversized(self):
        with pytest.raises(UploadRejected) as exc:
            validate_upload("big.html", "text/html", 31 * MB, 30 * MB)
        assert exc.value.status_code == 413
        assert "30 MB" in str(exc.value)

    def test_unknown_size_passes(self):
        validate_upload("report.html", "text/html", None, MB)


class TestSaveUpload:
    def test_copies_bytes(self, tmp_path):
        data = b"<html><body>hello</body></html>"
        path, size = save_upload(io.BytesIO(data), tmp_path / "work", MB)

        assert path.parent == tmp_path / "work"
        assert path.suffix == ".html"
        assert path.read_bytes() == data
        assert size == len(data)

    def test_over_limit_leaves_nothing_behind(self, tmp_path):
        work = tmp_path / "work"
        with pytest.raises(UploadRejected) as exc:
            save_upload(io.BytesIO(b"x" * 2048), work, 1024)

        assert exc.value.status_code == 413
        assert list(work.iterdir()) == []


class TestDiscard:
    def test_missing_file_is_fine(self, tmp_path):
        discard(tmp_path / "gone.pdf")
        discard(None)

    def test_removes_file(self, tmp_path):
        f = tmp_path / "out.pdf"
        f.write_bytes(b"%PDF")
        discard(f)
        assert not f.exists()
