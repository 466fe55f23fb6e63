"""여러 의존성에 대한 병렬 분석 실행"""

import asyncio
import concurrent.futures
import threading

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from .base import (
    AnalysisError,
    AnalysisResult,
    AnalysisStage,
    AnalysisStatus,
    DependencyAnalyzer,
    DependencyRecord,
)
from .errors import ErrorKind, ProcessInterrupted

console = Console()


class ParallelAnalyzer:
    """의존성 목록을 분석기에 분배하는 실행기

    취소(cancel() 또는 KeyboardInterrupt)되면 실행 중인 yarn 프로세스를
    종료하고 ProcessInterrupted / KeyboardInterrupt를 호출자에게 전파한다.
    """

    def __init__(self, analyzer: DependencyAnalyzer, max_workers: int = 4):
        self.analyzer = analyzer
        self.max_workers = max_workers
        self.cancel_event = threading.Event()

    def cancel(self) -> None:
        self.cancel_event.set()

    def _analyze(self, record: DependencyRecord) -> AnalysisResult:
        """개별 의존성 분석"""
        try:
            return self.analyzer.analyze(record, cancel_event=self.cancel_event)
        except ProcessInterrupted:
            raise
        except Exception as e:
            return AnalysisResult(
                dependency=record,
                status=AnalysisStatus.FAILED,
                error=AnalysisError(
                    kind=ErrorKind.UNEXPECTED,
                    stage=AnalysisStage.PREPARE,
                    dependency=record.display_name,
                    message=str(e),
                ),
            )

    def run_sequential(self, records: list[DependencyRecord]) -> list[AnalysisResult]:
        """순차 실행"""
        results = []
        for record in records:
            console.print(f"[cyan]Analyzing {record.display_name}...[/cyan]")
            result = self._analyze(record)
            results.append(result)
            console.print(
                f"  {self._status_badge(result)} {record.display_name}: "
                f"{len(result.evidence)} vulnerabilities ({result.execution_time:.2f}s)"
            )
        return results

    def run_parallel(
        self, records: list[DependencyRecord], show_progress: bool = True
    ) -> list[AnalysisResult]:
        """병렬 실행"""
        if not records:
            return []

        results: list[AnalysisResult] = []
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            future_to_record = {
                executor.submit(self._analyze, record): record for record in records
            }
            if show_progress:
                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    TimeElapsedColumn(),
                    console=console,
                ) as progress:
                    task_ids = {
                        record.display_name: progress.add_task(
                            f"[cyan]{record.display_name}[/cyan]", total=None
                        )
                        for record in records
                    }
                    for future in concurrent.futures.as_completed(future_to_record):
                        record = future_to_record[future]
                        result = future.result()
                        results.append(result)
                        progress.update(
                            task_ids[record.display_name],
                            description=(
                                f"{self._status_badge(result)} {record.display_name}: "
                                f"{len(result.evidence)} vulnerabilities"
                            ),
                            completed=True,
                        )
            else:
                for future in concurrent.futures.as_completed(future_to_record):
                    results.append(future.result())
        except (ProcessInterrupted, KeyboardInterrupt):
            self.cancel()
            executor.shutdown(wait=True, cancel_futures=True)
            raise
        executor.shutdown(wait=True)

        # 원래 순서대로 정렬
        order = {id(record): i for i, record in enumerate(records)}
        results.sort(key=lambda r: order.get(id(r.dependency), len(records)))
        return results

    async def run_async(self, records: list[DependencyRecord]) -> list[AnalysisResult]:
        """비동기 실행 (asyncio)

        yarn 실행은 블로킹이므로 executor 스레드에서 돌린다.
        """
        loop = asyncio.get_running_loop()

        async def run_in_executor(record: DependencyRecord) -> AnalysisResult:
            return await loop.run_in_executor(None, self._analyze, record)

        try:
            results = await asyncio.gather(*[run_in_executor(record) for record in records])
        except asyncio.CancelledError:
            self.cancel()
            raise
        return list(results)

    @staticmethod
    def _status_badge(result: AnalysisResult) -> str:
        if result.status is AnalysisStatus.FAILED:
            return "[red]✗[/red]"
        if result.status is AnalysisStatus.DISABLED:
            return "[yellow]-[/yellow]"
        return "[green]✓[/green]"
