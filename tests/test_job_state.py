"""Tests for stages, the job transition table and the JobRepository."""

import pytest

from coursegen.errors import NotFoundError, PersistenceError, StageOutOfOrderError, ValidationError
from coursegen.factory import job_state as job_state_module
from coursegen.factory.job_state import JobRepository, can_transition
from coursegen.models import JobStatus, Stage


class TestStage:
    def test_fixed_order(self):
        assert Stage.ordered() == [Stage.SCRIPT, Stage.STORYBOARD, Stage.PAGES, Stage.MERGE]
        assert Stage.SCRIPT.next() == Stage.STORYBOARD
        assert Stage.MERGE.next() is None

    def test_parse_is_case_insensitive(self):
        assert Stage.parse(" pages ") == Stage.PAGES

    def test_parse_rejects_unknown(self):
        with pytest.raises(NotFoundError, match="Unknown stage"):
            Stage.parse("RENDER")


class TestTransitions:
    @pytest.mark.parametrize("from_status,to_status,allowed", [
        (JobStatus.PENDING, JobStatus.RUNNING, True),
        (JobStatus.PENDING, JobStatus.COMPLETED, False),
        (JobStatus.RUNNING, JobStatus.AWAITING_APPROVAL, True),
        (JobStatus.AWAITING_APPROVAL, JobStatus.COMPLETED, False),
        (JobStatus.FAILED, JobStatus.RUNNING, True),
        (JobStatus.COMPLETED, JobStatus.RUNNING, False),
    ])
    def test_table(self, from_status, to_status, allowed):
        assert can_transition(from_status, to_status) is allowed


class TestJobRepository:
    def test_create_requires_content(self, repo):
        with pytest.raises(ValidationError, match="content is required"):
            repo.create("   ")

    def test_create_and_get(self, repo):
        job = repo.create("# Title", style="tech", language="de", auto_mode=True)

        assert job.id.startswith("job_")
        assert job.describe_state() == "PENDING"
        assert repo.get(job.id) is job
        assert job.history[0]["to"] == "PENDING"

    def test_get_unknown(self, repo):
        with pytest.raises(NotFoundError, match="job_missing"):
            repo.get("job_missing")

    def test_forbidden_transition_changes_nothing(self, repo):
        job = repo.create("# Title")

        with pytest.raises(StageOutOfOrderError):
            repo.transition(job, JobStatus.COMPLETED)

        assert job.status == JobStatus.PENDING
        assert len(job.history) == 1

    def test_transition_records_history_and_error(self, repo):
        job = repo.create("# Title")
        repo.transition(job, JobStatus.RUNNING, Stage.SCRIPT, reason="Started")
        repo.transition(job, JobStatus.FAILED, Stage.SCRIPT, error="boom")

        assert job.describe_state() == "FAILED(SCRIPT)"
        assert job.error == "boom"
        assert job.history[-1]["from"] == "RUNNING(SCRIPT)"
        assert job.history[-1]["to"] == "FAILED"

        repo.transition(job, JobStatus.RUNNING, Stage.SCRIPT)
        assert job.error is None

    def test_list_newest_first(self, repo):
        first = repo.create("# One")
        second = repo.create("# Two")

        jobs = repo.list()

        assert {j.id for j in jobs} == {first.id, second.id}
        assert jobs[0].created_at >= jobs[1].created_at

    def test_persisted_jobs_reload(self, tmp_path):
        repo = JobRepository(tmp_path)
        job = repo.create("# Title", style="classic")
        repo.transition(job, JobStatus.RUNNING, Stage.SCRIPT)
        repo.record_attempt(job, 2, "flaky")

        reloaded = JobRepository(tmp_path).get(job.id)

        assert reloaded.describe_state() == "RUNNING(SCRIPT)"
        assert reloaded.style == "classic"
        assert reloaded.retry_count == 2
        assert reloaded.error == "flaky"
        assert len(reloaded.history) == 2


def failing_write(path, data):
    raise PersistenceError("disk full")


class TestFailedWrites:
    def test_failed_transition_leaves_job_unchanged(self, tmp_path, monkeypatch):
        repo = JobRepository(tmp_path)
        job = repo.create("# Title")
        monkeypatch.setattr(job_state_module, "write_json_atomic", failing_write)

        with pytest.raises(PersistenceError):
            repo.transition(job, JobStatus.RUNNING, Stage.SCRIPT, reason="Started")

        assert job.status == JobStatus.PENDING
        assert len(job.history) == 1
        monkeypatch.undo()
        assert JobRepository(tmp_path).get(job.id).status == JobStatus.PENDING

    def test_best_effort_transition_applies_in_memory(self, tmp_path, monkeypatch):
        repo = JobRepository(tmp_path)
        job = repo.create("# Title")
        repo.transition(job, JobStatus.RUNNING, Stage.SCRIPT)
        monkeypatch.setattr(job_state_module, "write_json_atomic", failing_write)

        repo.transition(job, JobStatus.FAILED, Stage.SCRIPT, error="boom", best_effort=True)

        assert job.describe_state() == "FAILED(SCRIPT)"
        assert job.error == "boom"
        monkeypatch.undo()
        assert JobRepository(tmp_path).get(job.id).describe_state() == "RUNNING(SCRIPT)"

    def test_failed_attempt_record_leaves_job_unchanged(self, tmp_path, monkeypatch):
        repo = JobRepository(tmp_path)
        job = repo.create("# Title")
        monkeypatch.setattr(job_state_module, "write_json_atomic", failing_write)

        with pytest.raises(PersistenceError):
            repo.record_attempt(job, 2, "flaky")

        assert job.retry_count == 0
        assert job.error is None
