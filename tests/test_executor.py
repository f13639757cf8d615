"""
Tests for the bounded batch executor.
"""

import asyncio
import time

import pytest

from pipeline.errors import BatchTaskError
from pipeline.executor import run_bounded


class Tracker:
    """Records launch order and the peak number of concurrent tasks."""

    def __init__(self):
        self.running = 0
        self.peak = 0
        self.started = []
        self.finished = []

    def task(self, index, delay=0.0, fail=False):
        async def _run():
            self.started.append(index)
            self.running += 1
            self.peak = max(self.peak, self.running)
            try:
                await asyncio.sleep(delay)
                if fail:
                    raise RuntimeError(f"task {index} broke")
                return index * 10
            finally:
                self.running -= 1
                self.finished.append(index)
        return _run


class TestOrdering:

    def test_results_follow_input_order(self):
        tracker = Tracker()
        delays = [0.05, 0.0, 0.03, 0.01]
        tasks = [tracker.task(i, d) for i, d in enumerate(delays)]

        results = asyncio.run(run_bounded(tasks, 4))

        assert results == [0, 10, 20, 30]
        assert tracker.finished != [0, 1, 2, 3]

    def test_limit_one_is_sequential(self):
        tracker = Tracker()
        tasks = [tracker.task(i, 0.01) for i in range(5)]

        results = asyncio.run(run_bounded(tasks, 1))

        assert results == [0, 10, 20, 30, 40]
        assert tracker.peak == 1
        assert tracker.started == tracker.finished == [0, 1, 2, 3, 4]

    def test_launches_in_index_order_and_respects_limit(self):
        tracker = Tracker()
        tasks = [tracker.task(i, 0.01 * (i % 3)) for i in range(10)]

        asyncio.run(run_bounded(tasks, 3))

        assert tracker.started == list(range(10))
        assert tracker.peak == 3

    def test_empty_batch(self):
        assert asyncio.run(run_bounded([], 2)) == []

    @pytest.mark.parametrize("limit", [0, -1])
    def test_invalid_limit(self, limit):
        with pytest.raises(ValueError):
            asyncio.run(run_bounded([], limit))


class TestParallelism:

    def test_wide_limit_takes_about_the_slowest_task(self):
        tracker = Tracker()
        tasks = [tracker.task(i, 0.2) for i in range(5)]

        started = time.perf_counter()
        asyncio.run(run_bounded(tasks, 5))
        elapsed = time.perf_counter() - started

        assert elapsed < 0.6
        assert tracker.peak == 5


class TestFailFast:

    def test_reports_failure_in_launch_order(self):
        tracker = Tracker()
        tasks = [
            tracker.task(0, 0.01),
            tracker.task(1, 0.01),
            tracker.task(2, 0.05, fail=True),
            tracker.task(3, 0.0),
        ]

        with pytest.raises(BatchTaskError) as excinfo:
            asyncio.run(run_bounded(tasks, 4))

        assert excinfo.value.index == 2
        assert isinstance(excinfo.value.error, RuntimeError)
        assert tracker.finished.index(3) < tracker.finished.index(2)

    def test_lowest_index_wins_when_several_fail(self):
        tracker = Tracker()
        tasks = [
            tracker.task(0, 0.0),
            tracker.task(1, 0.1, fail=True),
            tracker.task(2, 0.0, fail=True),
        ]

        with pytest.raises(BatchTaskError) as excinfo:
            asyncio.run(run_bounded(tasks, 3))

        assert excinfo.value.index == 1

    def test_in_flight_tasks_finish_and_nothing_new_starts(self):
        tracker = Tracker()
        tasks = [
            tracker.task(0, 0.0, fail=True),
            tracker.task(1, 0.1),
            tracker.task(2, 0.0),
            tracker.task(3, 0.0),
        ]

        with pytest.raises(BatchTaskError):
            asyncio.run(run_bounded(tasks, 2))

        assert tracker.started == [0, 1]
        assert sorted(tracker.finished) == [0, 1]
        assert tracker.running == 0
