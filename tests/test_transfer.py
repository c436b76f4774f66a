"""End-to-end tests of the agent and AgentClient over a local TCP port."""

import threading
import time
import zipfile
from unittest.mock import MagicMock, patch

import grpc
import pytest

from slurm_bridge.errors import TransferError
from slurm_bridge.transfer import AgentClient, create_agent_server, download, upload
from slurm_bridge.transfer.client import iter_chunks, normalize_address
from slurm_bridge.transfer.messages import (
    Chunk,
    CreateFileRequest,
    JobInfoResponse,
    decoder,
    encode,
)

from helpers.slurm_output import SACCT_STEPS, SCONTROL_JOB, SCONTROL_PARTITIONS


@pytest.fixture
def agent(client):
    server, port = create_agent_server(client, "localhost:0", max_workers=4, chunk_size=8)
    server.start()
    with AgentClient(f"localhost:{port}") as agent_client:
        yield agent_client
    server.stop(None)


def _completed(stdout="", stderr="", returncode=0):
    return MagicMock(stdout=stdout, stderr=stderr, returncode=returncode)


class TestMessages:
    def test_binary_content_survives(self):
        payload = encode(Chunk(content=b"\x00\xffdata"))
        assert decoder(Chunk)(payload) == Chunk(content=b"\x00\xffdata")

    def test_unknown_keys_are_dropped(self):
        payload = encode(CreateFileRequest(path="/tmp/x", content=b"a"))
        assert decoder(Chunk)(payload) == Chunk(content=b"a")

    def test_nested_records(self):
        message = JobInfoResponse(info=[{"id": "1", "run_time": 60}])
        assert decoder(JobInfoResponse)(encode(message)) == message


def test_normalize_address():
    assert normalize_address("/var/run/syslurm/red-box.sock") == (
        "unix:///var/run/syslurm/red-box.sock"
    )
    assert normalize_address("unix:///tmp/a.sock") == "unix:///tmp/a.sock"
    assert normalize_address("localhost:9999") == "localhost:9999"


def test_agent_client_requires_target():
    with pytest.raises(ValueError):
        AgentClient()


def test_iter_chunks(tmp_path):
    path = tmp_path / "data"
    path.write_bytes(b"abcdefghij")
    with open(path, "rb") as source:
        assert list(iter_chunks(source, 4)) == [b"abcd", b"efgh", b"ij"]


class TestFiles:
    def test_create_file_concatenates_chunks(self, agent, tmp_path):
        target = tmp_path / "remote" / "data.bin"

        agent.create_file(str(target), [b"first ", b"", b"second ", b"third"])

        assert target.read_bytes() == b"first second third"

    def test_open_file_streams_in_chunks(self, agent, tmp_path):
        source = tmp_path / "slurm-35.out"
        source.write_bytes(b"0123456789abcdefghij")

        chunks = list(agent.open_file(str(source)))

        assert chunks == [b"01234567", b"89abcdef", b"ghij"]

    def test_open_missing_file(self, agent, tmp_path):
        with pytest.raises(TransferError) as exc_info:
            list(agent.open_file(str(tmp_path / "missing")))
        assert exc_info.value.code == grpc.StatusCode.NOT_FOUND

    def test_tail_file_follows_appends(self, agent, tmp_path):
        log = tmp_path / "slurm-35.out"
        log.write_bytes(b"")

        def writer():
            time.sleep(0.05)
            with open(log, "ab") as f:
                f.write(b"started\n")

        thread = threading.Thread(target=writer)
        thread.start()
        tail = agent.tail_file(str(log))
        chunks = iter(tail)
        first = next(chunks)
        tail.cancel()
        thread.join()

        assert first == b"started\n"
        assert list(chunks) == []

    def test_tail_missing_file(self, agent, tmp_path):
        with pytest.raises(TransferError) as exc_info:
            list(agent.tail_file(str(tmp_path / "missing")))
        assert exc_info.value.code == grpc.StatusCode.NOT_FOUND

    def test_unzip_rejects_traversal(self, agent, tmp_path):
        evil = tmp_path / "evil.zip"
        with zipfile.ZipFile(evil, "w") as archive:
            archive.writestr("../escape.txt", "x")

        with pytest.raises(TransferError) as exc_info:
            agent.unzip(str(evil), str(tmp_path / "dest"))

        assert exc_info.value.code == grpc.StatusCode.INVALID_ARGUMENT
        assert not (tmp_path / "escape.txt").exists()


class TestResults:
    def test_upload(self, agent, tmp_path):
        local = tmp_path / "local" / "inputs"
        (local / "data").mkdir(parents=True)
        (local / "data" / "input.csv").write_text("a,b\n1,2\n")
        remote_dir = tmp_path / "remote"

        remote_archive = upload(agent, str(local), str(remote_dir), chunk_size=5)

        assert remote_archive == str(remote_dir / "inputs.zip")
        assert (remote_dir / "inputs.zip").is_file()
        assert (remote_dir / "inputs" / "data" / "input.csv").read_text() == "a,b\n1,2\n"

    def test_download(self, agent, tmp_path):
        remote = tmp_path / "remote" / "results"
        remote.mkdir(parents=True)
        (remote / "out.txt").write_text("done\n")
        local_dir = tmp_path / "local"

        local_archive = download(agent, str(remote) + "/", str(local_dir))

        assert local_archive == str(local_dir / "results.zip")
        assert (tmp_path / "remote" / "results.zip").is_file()
        assert (local_dir / "results" / "out.txt").read_text() == "done\n"

    def test_download_missing_remote(self, agent, tmp_path):
        with pytest.raises(TransferError) as exc_info:
            download(agent, str(tmp_path / "missing"), str(tmp_path / "local"))
        assert exc_info.value.code == grpc.StatusCode.INTERNAL


class TestJobs:
    @patch("subprocess.run")
    def test_submit(self, mock_run, agent):
        mock_run.return_value = _completed(stdout="77\n")

        assert agent.submit("#!/bin/bash\n", "debug") == 77
        assert mock_run.call_args[1]["input"] == "#!/bin/bash\n"

    @patch("subprocess.run")
    def test_submit_failure_is_internal(self, mock_run, agent):
        mock_run.return_value = _completed(stderr="sbatch: error", returncode=1)

        with pytest.raises(TransferError, match="submission failed") as exc_info:
            agent.submit("#!/bin/bash\n")
        assert exc_info.value.code == grpc.StatusCode.INTERNAL

    @patch("subprocess.run")
    def test_job_info(self, mock_run, agent):
        mock_run.return_value = _completed(stdout=SCONTROL_JOB)

        infos = agent.job_info(35)

        assert len(infos) == 1
        assert infos[0].id == "35"
        assert infos[0].run_time.total_seconds() == 1
        assert infos[0].time_limit is None

    @patch("subprocess.run")
    def test_job_steps(self, mock_run, agent):
        mock_run.return_value = _completed(stdout=SACCT_STEPS)

        steps = agent.job_steps(35)

        assert [s.exit_code for s in steps] == [0, 0, 2]
        assert steps[2].finished_at is None

    @patch("subprocess.run")
    def test_partitions(self, mock_run, agent):
        mock_run.return_value = _completed(stdout=SCONTROL_PARTITIONS)
        assert agent.partitions() == ["debug", "gpu"]

    @patch("subprocess.run")
    def test_resources(self, mock_run, agent):
        mock_run.return_value = _completed(
            stdout="PartitionName=gpu MaxTime=2-00:00:00 TotalCPUs=32 TotalNodes=4 "
            "MaxMemPerNode=64000"
        )

        resources = agent.resources("gpu")

        assert resources.nodes == 4
        assert resources.cpu_per_node == 8
        assert resources.wall_time.days == 2

    @patch("subprocess.run")
    def test_workload_info(self, mock_run, agent):
        mock_run.return_value = _completed(stdout="slurm 21.08.5\n")

        info = agent.workload_info()

        assert info.name == "slurm"
        assert info.version == "21.08.5"

    @patch("subprocess.run")
    def test_parse_error_is_invalid_argument(self, mock_run, agent):
        mock_run.return_value = _completed(stdout="slurm\n")

        with pytest.raises(TransferError) as exc_info:
            agent.workload_info()
        assert exc_info.value.code == grpc.StatusCode.INVALID_ARGUMENT
