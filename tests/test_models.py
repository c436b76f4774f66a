from datetime import datetime, timedelta

import pytest

from slurm_bridge.models import (
    DEFAULT_PARTITION_KEYS,
    Feature,
    JobInfo,
    JobStepInfo,
    Resources,
    partition_fields,
)
from slurm_bridge.records import FieldKind


def test_job_info_dict_conversion():
    info = JobInfo(
        id="35",
        name="sbatch",
        state="RUNNING",
        submit_time=datetime(2019, 3, 27, 12, 5, 41),
        run_time=timedelta(minutes=2),
    )

    data = info.to_dict()

    assert data["submit_time"] == "2019-03-27T12:05:41"
    assert data["start_time"] is None
    assert data["run_time"] == 120
    assert data["time_limit"] is None
    assert JobInfo.from_dict(data) == info


def test_job_info_from_dict_ignores_unknown_keys():
    info = JobInfo.from_dict({"id": "1", "color": "blue"})
    assert info.id == "1"
    assert info.state == ""


def test_job_step_dict_conversion():
    step = JobStepInfo(
        id="35.0",
        name="step",
        started_at=datetime(2019, 3, 27, 12, 5, 42),
        exit_code=2,
        state="FAILED",
    )
    assert JobStepInfo.from_dict(step.to_dict()) == step


def test_resources_dict_conversion():
    resources = Resources(
        nodes=4,
        mem_per_node=64000,
        cpu_per_node=8,
        wall_time=timedelta(days=2),
        features=(Feature("gpu", "a100", 2),),
    )

    data = resources.to_dict()

    assert data["wall_time"] == 172800
    assert data["features"] == [{"name": "gpu", "version": "a100", "quantity": 2}]
    assert Resources.from_dict(data) == resources


@pytest.mark.parametrize("name", ["nodes", "mem_per_node", "cpu_per_node"])
def test_resources_reject_negative_values(name):
    with pytest.raises(ValueError, match=name):
        Resources(**{name: -1})


def test_descriptors_are_read_only():
    info = JobInfo(id="1")
    with pytest.raises(AttributeError):
        info.id = "2"


class TestPartitionFields:
    def test_defaults(self):
        table = {entry.attribute: entry for entry in partition_fields()}

        assert set(table) == set(DEFAULT_PARTITION_KEYS)
        assert table["mem_per_node"].key == "MaxMemPerNode"
        assert table["wall_time"].kind is FieldKind.DURATION
        assert table["total_cpus"].kind is FieldKind.INT

