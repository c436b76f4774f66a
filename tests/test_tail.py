import threading
import time

import pytest

from slurm_bridge.errors import FileNotFound
from slurm_bridge.tail import TailReader


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFound):
        TailReader(str(tmp_path / "slurm-1.out"))


def test_reads_existing_content(tmp_path):
    log = tmp_path / "slurm-1.out"
    log.write_bytes(b"line 1\n")

    with TailReader(str(log), poll_interval=0.01) as reader:
        assert reader.read() == b"line 1\n"


def test_waits_for_appended_data(tmp_path):
    log = tmp_path / "slurm-1.out"
    log.write_bytes(b"")

    def writer():
        time.sleep(0.05)
        with open(log, "ab") as f:
            f.write(b"line 2\n")

    thread = threading.Thread(target=writer)
    thread.start()
    with TailReader(str(log), poll_interval=0.01) as reader:
        assert reader.read() == b"line 2\n"
    thread.join()


def test_rewinds_after_truncation(tmp_path):
    log = tmp_path / "slurm-1.out"
    log.write_bytes(b"old content\n")

    with TailReader(str(log), poll_interval=0.01) as reader:
        assert reader.read() == b"old content\n"
        log.write_bytes(b"new\n")
        assert reader.read() == b"new\n"


def test_close_from_another_thread_ends_iteration(tmp_path):
    log = tmp_path / "slurm-1.out"
    log.write_bytes(b"first\n")
    reader = TailReader(str(log), poll_interval=0.01)

    chunks = []

    def consume():
        for chunk in reader:
            chunks.append(chunk)

    thread = threading.Thread(target=consume)
    thread.start()
    time.sleep(0.05)
    reader.close()
    thread.join(timeout=2)

    assert not thread.is_alive()
    assert chunks == [b"first\n"]
    assert reader.closed
    assert reader.read() == b""


def test_close_is_idempotent(tmp_path):
    log = tmp_path / "slurm-1.out"
    log.write_bytes(b"")
    reader = TailReader(str(log))
    reader.close()
    reader.close()
    assert reader.closed
