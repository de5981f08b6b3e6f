"""Tests for pass orchestration and the poll scheduler."""

import threading
import time

import pytest

from fakes import at
from repowatcher.errors import NotFoundError, PassCancelledError, RunnerConfigError
from repowatcher.watcher import PollScheduler, RepoWatcher

RUNNER_YAML = b"""
registry:
  type: huggingface
  api_key: key
model:
  type: llm
train:
  entrypoint: train.py
  base_image: python:3.11
score:
  score_entry_point: score.py
"""


@pytest.fixture
def watcher(fake_client):
    return RepoWatcher(fake_client, repo_name="demo")


class TestRunPass:
    """Test a full fetch, detect and build pass."""

    def test_pass_detects_and_builds(self, watcher, fake_client):
        fake_client.commit("main", "a" * 40, at(0))
        fake_client.commit("dev", "b" * 40, at(5))

        result = watcher.run_pass()

        assert result.success
        assert sorted(result.changed) == ["dev", "main"]
        assert result.report.built == ["dev", "main"]
        assert fake_client.fetch_calls == 1
        assert all(not s.changed for s in watcher.query.list_branches())

    def test_pass_without_build(self, watcher, fake_client):
        fake_client.commit("main", "a" * 40, at(0))

        result = watcher.run_pass(build=False)

        assert result.report is None
        assert watcher.store.get("main").changed

    def test_fetch_failure_aborts_pass(self, watcher, fake_client):
        """A transport failure leaves the store untouched and is reported."""
        fake_client.commit("main", "a" * 40, at(0))
        watcher.run_pass()
        before = watcher.store.get_all()

        fake_client.commit("main", "b" * 40, at(5))
        fake_client.fail_fetch = True
        result = watcher.run_pass()

        assert not result.success
        assert "connection refused" in result.error
        assert watcher.store.get_all() == before

    def test_listing_failure_aborts_pass(self, watcher, fake_client):
        fake_client.commit("main", "a" * 40, at(0))
        fake_client.fail_listing = True

        result = watcher.run_pass()

        assert not result.success
        assert len(watcher.store) == 0

    def test_pass_recovers_on_next_run(self, watcher, fake_client):
        fake_client.commit("main", "a" * 40, at(0))
        fake_client.fail_fetch = True
        watcher.run_pass()

        fake_client.fail_fetch = False
        result = watcher.run_pass()

        assert result.success
        assert watcher.query.get_snapshot("main")

    def test_cancelled_pass_raises(self, watcher, fake_client):
        fake_client.commit("main", "a" * 40, at(0))
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(PassCancelledError):
            watcher.run_pass(cancel)


class TestRunnerConfig:
    """Test reading runner files from watched branches."""

    def test_runner_config(self, watcher, fake_client):
        fake_client.commit("main", "a" * 40, at(0), files={"runner.yaml": RUNNER_YAML})
        watcher.run_pass(build=False)

        config = watcher.runner_config("main")

        assert config.model.name == "demo"
        assert config.model.namespace == "main"

    def test_missing_runner_file(self, watcher, fake_client):
        fake_client.commit("main", "a" * 40, at(0))
        watcher.run_pass(build=False)

        with pytest.raises(NotFoundError):
            watcher.runner_config("main")

    def test_invalid_runner_file(self, watcher, fake_client):
        fake_client.commit("main", "a" * 40, at(0), files={"runner.yaml": b"model: {}\n"})
        watcher.run_pass(build=False)

        with pytest.raises(RunnerConfigError):
            watcher.runner_config("main")


class TestPollScheduler:
    """Test the background poll loop."""

    def test_runs_startup_pass_and_stops(self, watcher, fake_client):
        fake_client.commit("main", "a" * 40, at(0))
        scheduler = PollScheduler(watcher, interval=60)

        scheduler.start()
        deadline = time.monotonic() + 5
        while watcher.store.get("main") is None or watcher.store.get("main").changed:
            assert time.monotonic() < deadline
            time.sleep(0.01)
        scheduler.stop(timeout=5)

        assert not scheduler.running
        assert fake_client.fetch_calls == 1

    def test_polls_on_interval(self, watcher, fake_client):
        fake_client.commit("main", "a" * 40, at(0))
        scheduler = PollScheduler(watcher, interval=0.01)

        scheduler.start(run_immediately=False)
        deadline = time.monotonic() + 5
        while fake_client.fetch_calls < 3:
            assert time.monotonic() < deadline
            time.sleep(0.01)
        scheduler.stop(timeout=5)

        assert not scheduler.running

    def test_failed_pass_does_not_stop_polling(self, watcher, fake_client):
        fake_client.fail_fetch = True
        scheduler = PollScheduler(watcher, interval=0.01)

        scheduler.start()
        deadline = time.monotonic() + 5
        while fake_client.fetch_calls < 2:
            assert time.monotonic() < deadline
            time.sleep(0.01)

        assert scheduler.running
        scheduler.stop(timeout=5)

    def test_run_once_contains_cancellation(self, watcher, fake_client):
        fake_client.commit("main", "a" * 40, at(0))
        scheduler = PollScheduler(watcher, interval=60)
        scheduler.stop()

        assert scheduler.run_once() is None
