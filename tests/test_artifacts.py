# tests/test_artifacts.py
import io

import pytest

from convert_server.artifacts import ArtifactStore, UploadTooLarge, output_filename, safe_stem


@pytest.fixture
def artifacts(tmp_path):
    return ArtifactStore(tmp_path / "files")


def test_save_upload_writes_unique_files(artifacts):
    first = artifacts.save_upload(io.BytesIO(b"hello"), "My Report.pdf", 1024)
    second = artifacts.save_upload(io.BytesIO(b"hello"), "My Report.pdf", 1024)

    assert first.ref != second.ref
    assert first.ref.startswith("inputs/My_Report_")
    assert first.ref.endswith(".pdf")
    assert first.size == 5
    assert artifacts.path(first.ref).read_bytes() == b"hello"


def test_save_upload_stops_at_limit(artifacts):
    with pytest.raises(UploadTooLarge):
        artifacts.save_upload(io.BytesIO(b"x" * 2048), "big.pdf", 1024)

    assert list((artifacts.root / "inputs").iterdir()) == []


def test_path_rejects_escaping_refs(artifacts):
    with pytest.raises(ValueError):
        artifacts.path("../outside.txt")


def test_delete_is_quiet_for_missing_refs(artifacts):
    artifacts.ensure_dirs()
    artifacts.delete("inputs/never-existed.pdf")
    artifacts.delete(None)


def test_output_filename_format():
    assert output_filename("report.pdf", "docx", now_ms=1700000000000) == "report_converted_1700000000000.docx"


def test_safe_stem_strips_paths_and_symbols():
    assert safe_stem("../../etc/passwd") == "passwd"
    assert safe_stem("año fiscal (final).xlsx") == "a_o_fiscal_final"
    assert safe_stem("...") == "file"
