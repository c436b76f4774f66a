import os
import stat
import zipfile

import pytest

from slurm_bridge.archive import unzip_path, zip_path
from slurm_bridge.errors import PathTraversalError


@pytest.fixture
def results_dir(tmp_path):
    root = tmp_path / "results"
    (root / "logs").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "out.txt").write_text("done\n")
    (root / "logs" / "slurm-35.out").write_bytes(b"\x00\x01binary")
    return root


def test_zip_member_names(results_dir, tmp_path):
    target = tmp_path / "results.zip"

    zip_path(results_dir, target)

    with zipfile.ZipFile(target) as archive:
        names = archive.namelist()
        assert archive.getinfo("results/out.txt").compress_type == zipfile.ZIP_DEFLATED
    assert names == [
        "results/",
        "results/empty/",
        "results/logs/",
        "results/out.txt",
        "results/logs/slurm-35.out",
    ]


def test_round_trip(results_dir, tmp_path):
    target = tmp_path / "results.zip"
    zip_path(results_dir, target)

    dest = tmp_path / "restored"
    unzip_path(target, dest)

    assert (dest / "results" / "out.txt").read_text() == "done\n"
    assert (dest / "results" / "logs" / "slurm-35.out").read_bytes() == b"\x00\x01binary"
    assert (dest / "results" / "empty").is_dir()


def test_zip_single_file(results_dir, tmp_path):
    target = tmp_path / "single.zip"

    zip_path(results_dir / "out.txt", target)

    with zipfile.ZipFile(target) as archive:
        assert archive.namelist() == ["out.txt"]


def test_zip_skips_target_inside_source(results_dir):
    target = results_dir / "results.zip"

    zip_path(results_dir, target)

    with zipfile.ZipFile(target) as archive:
        assert "results/results.zip" not in archive.namelist()


def test_zip_missing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        zip_path(tmp_path / "missing", tmp_path / "missing.zip")


def test_unzip_preserves_mode(results_dir, tmp_path):
    script = results_dir / "run.sh"
    script.write_text("#!/bin/sh\n")
    script.chmod(0o755)
    target = tmp_path / "results.zip"
    zip_path(results_dir, target)

    dest = tmp_path / "restored"
    unzip_path(target, dest)

    mode = stat.S_IMODE(os.stat(dest / "results" / "run.sh").st_mode)
    assert mode & 0o111


def test_unzip_overwrites_existing(results_dir, tmp_path):
    target = tmp_path / "results.zip"
    zip_path(results_dir, target)
    dest = tmp_path / "restored"
    (dest / "results").mkdir(parents=True)
    (dest / "results" / "out.txt").write_text("a much longer stale file\n")

    unzip_path(target, dest)

    assert (dest / "results" / "out.txt").read_text() == "done\n"


@pytest.mark.parametrize("entry", ["../../etc/passwd", "/etc/passwd", "a/../../b"])
def test_unzip_rejects_escaping_entries(tmp_path, entry):
    target = tmp_path / "evil.zip"
    with zipfile.ZipFile(target, "w") as archive:
        archive.writestr(entry, "root:x:0:0")

    dest = tmp_path / "work" / "dest"
    with pytest.raises(PathTraversalError) as exc_info:
        unzip_path(target, dest)

    assert exc_info.value.entry == entry
    assert "invalid file path" in str(exc_info.value)
    assert not (tmp_path / "etc" / "passwd").exists()
    assert not (tmp_path / "work" / "b").exists()
    assert not dest.exists() or not any(dest.iterdir())
