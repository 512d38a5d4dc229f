"""
Unit tests for the status machine, job projection and stats reshaping.
"""

from datetime import datetime, timezone

import pytest

from pgjobqueue.constants import JobStatus
from pgjobqueue.db.stats import group_counts
from pgjobqueue.types.job import Job, JobResult


class TestJobStatus:
    """Tests for the status transition table."""

    @pytest.mark.parametrize(
        "source,target",
        [
            (JobStatus.SCHEDULED, JobStatus.ACQUIRED),
            (JobStatus.ACQUIRED, JobStatus.COMPLETED),
            (JobStatus.ACQUIRED, JobStatus.FAILED),
        ],
    )
    def test_allowed_transitions(self, source: JobStatus, target: JobStatus):
        assert source.can_transition_to(target)

    @pytest.mark.parametrize(
        "source,target",
        [
            (JobStatus.SCHEDULED, JobStatus.COMPLETED),
            (JobStatus.SCHEDULED, JobStatus.FAILED),
            (JobStatus.ACQUIRED, JobStatus.SCHEDULED),
            (JobStatus.COMPLETED, JobStatus.FAILED),
            (JobStatus.FAILED, JobStatus.COMPLETED),
            (JobStatus.COMPLETED, JobStatus.SCHEDULED),
        ],
    )
    def test_rejected_transitions(self, source: JobStatus, target: JobStatus):
        assert not source.can_transition_to(target)

    def test_terminal_statuses(self):
        assert {s for s in JobStatus if s.is_terminal} == {
            JobStatus.COMPLETED,
            JobStatus.FAILED,
        }

    def test_sources_of(self):
        assert JobStatus.sources_of(JobStatus.ACQUIRED) == [JobStatus.SCHEDULED]
        assert JobStatus.sources_of(JobStatus.COMPLETED) == [JobStatus.ACQUIRED]
        assert JobStatus.sources_of(JobStatus.FAILED) == [JobStatus.ACQUIRED]
        assert JobStatus.sources_of(JobStatus.SCHEDULED) == []

    def test_values_are_stored_names(self):
        assert [s.value for s in JobStatus] == ["scheduled", "acquired", "completed", "failed"]


class TestJob:
    """Tests for the Job projection."""

    def test_from_mapping(self):
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        job = Job.from_row(
            {
                "id": "abc",
                "queue": "default",
                "payload": {"job_type": "echo"},
                "status": "acquired",
                "priority": 3,
                "worker": "w1",
                "result": None,
                "created_at": created,
                "updated_at": created,
            }
        )

        assert job.id == "abc"
        assert job.status is JobStatus.ACQUIRED
        assert job.priority == 3
        assert job.worker == "w1"
        assert job.result is None
        assert job.created_at == created
        assert job.job_type == "echo"
        assert not job.is_terminal

    def test_job_type_requires_string(self):
        job = Job(id="1", queue="q", payload={"job_type": 5}, status=JobStatus.SCHEDULED)
        assert job.job_type is None

    def test_terminal(self):
        job = Job(id="1", queue="q", payload={}, status=JobStatus.FAILED, result={})
        assert job.is_terminal


class TestJobResult:
    """Tests for the result document written on completion."""

    def test_success_document_is_output(self):
        assert JobResult(success=True, output={"x": 1}).to_result_document() == {"x": 1}

    def test_success_without_output_is_empty(self):
        assert JobResult(success=True).to_result_document() == {}

    def test_failure_document_carries_error(self):
        result = JobResult(success=False, error="boom", output={"partial": True})
        assert result.to_result_document() == {"error": "boom", "output": {"partial": True}}

    def test_failure_without_message(self):
        assert JobResult(success=False).to_result_document() == {"error": "Unknown error"}


def test_group_counts_nests_by_queue_then_status():
    rows = [
        ("bar", "acquired", 1),
        ("bar", "scheduled", 2),
        ("default", "scheduled", 5),
        ("foo", "completed", 3),
        ("foo", "failed", 2),
    ]

    assert group_counts(rows) == {
        "bar": {"acquired": 1, "scheduled": 2},
        "default": {"scheduled": 5},
        "foo": {"completed": 3, "failed": 2},
    }


def test_group_counts_empty():
    assert group_counts([]) == {}
