"""외부 명령 실행기"""

import logging
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from .errors import ProcessInterrupted, ProcessLaunchError, ProcessTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """명령 실행 결과"""

    args: list[str]
    returncode: int
    stdout: str
    stderr: str


class ProcessRunner:
    """명령을 한 번 실행하고 stdout/stderr를 모두 수집한다.

    communicate()가 두 파이프를 동시에 비우므로 버퍼가 가득 차도
    교착되지 않는다. 대기 중 cancel_event가 설정되거나 timeout이 지나면
    자식 프로세스를 종료하고 예외를 던진다. 재시도는 하지 않는다.
    """

    def __init__(self, timeout: float | None = None, poll_interval: float = 0.2):
        self.timeout = timeout
        self.poll_interval = poll_interval

    def run(
        self,
        command: str,
        args: list[str] | None = None,
        cwd: str | Path | None = None,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        cmd = [command, *(args or [])]
        timeout = timeout if timeout is not None else self.timeout
        logger.debug("Launching: %s (cwd=%s)", cmd, cwd)

        try:
            process = subprocess.Popen(
                cmd,
                cwd=str(cwd) if cwd is not None else None,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise ProcessLaunchError(f"Unable to launch {command}: {e}") from e

        deadline = time.monotonic() + timeout if timeout else None
        try:
            while True:
                try:
                    stdout, stderr = process.communicate(timeout=self.poll_interval)
                    break
                except subprocess.TimeoutExpired:
                    if cancel_event is not None and cancel_event.is_set():
                        self._terminate(process)
                        raise ProcessInterrupted(f"{command} was cancelled while running")
                    if deadline is not None and time.monotonic() >= deadline:
                        self._terminate(process)
                        raise ProcessTimeoutError(f"{command} timed out after {timeout}s")
        except KeyboardInterrupt:
            self._terminate(process)
            raise

        return ProcessResult(
            args=cmd,
            returncode=process.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
        )

    @staticmethod
    def _terminate(process: subprocess.Popen) -> None:
        # 고아 프로세스가 남지 않도록 kill 후 reap
        process.kill()
        try:
            process.communicate(timeout=5)
        except subprocess.TimeoutExpired:
            logger.warning("Process %s did not exit after kill", process.pid)
