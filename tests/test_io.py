"""Tests for IO operations: fingerprint, backup, atomic write, text reading."""

from pathlib import Path

from nlsheet.io.fileops import atomic_write, backup, fingerprint, read_text_safe


def test_fingerprint(payroll_workbook: Path):
    fp = fingerprint(payroll_workbook)
    assert fp.startswith("sha256:")
    assert len(fp) == 71  # sha256: + 64 hex chars
    assert fingerprint(payroll_workbook) == fp


def test_fingerprint_changes_with_content(tmp_path: Path):
    path = tmp_path / "f.bin"
    path.write_bytes(b"one")
    first = fingerprint(path)
    path.write_bytes(b"two")
    assert fingerprint(path) != first


def test_backup(payroll_workbook: Path):
    bak_path = backup(payroll_workbook)
    assert Path(bak_path).exists()
    assert ".bak" in bak_path
    assert bak_path.endswith(".xlsx")
    assert Path(bak_path).read_bytes() == payroll_workbook.read_bytes()


def test_atomic_write(tmp_path: Path):
    target = tmp_path / "output.xlsx"
    atomic_write(target, b"test data content")
    assert target.read_bytes() == b"test data content"


def test_atomic_write_overwrites(tmp_path: Path):
    target = tmp_path / "output.xlsx"
    target.write_bytes(b"old content")
    atomic_write(target, b"new content")
    assert target.read_bytes() == b"new content"
    assert not list(tmp_path.glob(".nlsheet_tmp_*"))


def test_read_text_safe_strips_bom(tmp_path: Path):
    path = tmp_path / "s.yaml"
    path.write_bytes(b"\xef\xbb\xbfname: x\n")
    assert read_text_safe(path) == "name: x\n"


def test_backup_same_second_does_not_overwrite(payroll_workbook: Path):
    first = backup(payroll_workbook)
    second = backup(payroll_workbook)
    assert first != second
    assert Path(first).exists() and Path(second).exists()
