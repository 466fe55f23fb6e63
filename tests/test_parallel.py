"""ParallelAnalyzer 테스트"""

import asyncio
import threading
from pathlib import Path

import pytest

from analyzers.base import AnalysisResult, AnalysisStatus, DependencyRecord
from analyzers.errors import ErrorKind, ProcessInterrupted
from analyzers.parallel import ParallelAnalyzer


class _FakeAnalyzer:
    name = "Fake Analyzer"
    enabled = True

    def __init__(self, fail_on: str | None = None, interrupt_on: str | None = None):
        self.fail_on = fail_on
        self.interrupt_on = interrupt_on
        self.threads = set()
        self.cancel_events = []

    def prepare(self):
        return None

    def analyze(self, dependency, cancel_event=None):
        self.threads.add(threading.get_ident())
        self.cancel_events.append(cancel_event)
        if dependency.display_name == self.fail_on:
            raise RuntimeError("boom")
        if dependency.display_name == self.interrupt_on:
            raise ProcessInterrupted("cancelled")
        return AnalysisResult(dependency=dependency, status=AnalysisStatus.ANALYZED)


def _records(count: int) -> list[DependencyRecord]:
    return [
        DependencyRecord(file_path=Path(f"/repo/p{i}/yarn.lock"), display_name=f"p{i}/yarn.lock")
        for i in range(count)
    ]


def test_run_parallel_preserves_record_order():
    records = _records(6)
    runner = ParallelAnalyzer(_FakeAnalyzer(), max_workers=3)

    results = runner.run_parallel(records, show_progress=False)

    assert [r.dependency for r in results] == records
    assert all(r.status is AnalysisStatus.ANALYZED for r in results)


def test_run_parallel_with_progress():
    records = _records(2)

    results = ParallelAnalyzer(_FakeAnalyzer(), max_workers=2).run_parallel(records)

    assert len(results) == 2


def test_unexpected_exception_becomes_failed_result():
    records = _records(3)
    runner = ParallelAnalyzer(_FakeAnalyzer(fail_on="p1/yarn.lock"), max_workers=2)

    results = runner.run_parallel(records, show_progress=False)

    assert results[1].status is AnalysisStatus.FAILED
    assert results[1].error.kind is ErrorKind.UNEXPECTED
    assert results[0].status is AnalysisStatus.ANALYZED


def test_interruption_propagates_and_sets_cancel_event():
    analyzer = _FakeAnalyzer(interrupt_on="p0/yarn.lock")
    runner = ParallelAnalyzer(analyzer, max_workers=2)

    with pytest.raises(ProcessInterrupted):
        runner.run_parallel(_records(3), show_progress=False)

    assert runner.cancel_event.is_set()


def test_cancel_event_is_shared_with_analyzer():
    analyzer = _FakeAnalyzer()
    runner = ParallelAnalyzer(analyzer, max_workers=2)

    runner.run_sequential(_records(2))

    assert all(event is runner.cancel_event for event in analyzer.cancel_events)


def test_run_async_offloads_to_threads():
    analyzer = _FakeAnalyzer()
    records = _records(3)

    results = asyncio.run(ParallelAnalyzer(analyzer).run_async(records))

    assert [r.dependency for r in results] == records
    assert threading.get_ident() not in analyzer.threads
