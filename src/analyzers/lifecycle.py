"""분석기 활성화 상태 관리

Unprobed → Enabled | Disabled, Enabled → Disabled (단방향).
Disabled는 실행이 끝날 때까지 유지되며 재확인하지 않는다.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum

from .errors import InitializationError, ProcessInterrupted, YarnAuditError
from .process import ProcessRunner

logger = logging.getLogger(__name__)

# 셸이 실행 파일을 찾지 못했을 때의 종료 코드
COMMAND_NOT_FOUND_EXIT_CODE = 127


class LifecycleStatus(str, Enum):
    UNPROBED = "unprobed"
    ENABLED = "enabled"
    DISABLED = "disabled"


@dataclass(frozen=True)
class LifecycleState:
    status: LifecycleStatus
    reason: str | None = None

    @property
    def enabled(self) -> bool:
        return self.status is LifecycleStatus.ENABLED


UNPROBED = LifecycleState(LifecycleStatus.UNPROBED)


class AnalyzerLifecycle:
    """스레드 간 공유되는 활성화 상태

    모든 전이는 lock 아래에서 일어나며, 이미 Disabled인 상태에서의
    disable()은 아무 일도 하지 않는다.
    """

    def __init__(self, name: str = "Yarn Audit Analyzer"):
        self.name = name
        self._state = UNPROBED
        self._lock = threading.Lock()
        self._probe_lock = threading.Lock()

    @property
    def state(self) -> LifecycleState:
        with self._lock:
            return self._state

    @property
    def enabled(self) -> bool:
        return self.state.enabled

    def enable(self) -> LifecycleState:
        with self._lock:
            if self._state.status is LifecycleStatus.UNPROBED:
                self._state = LifecycleState(LifecycleStatus.ENABLED)
                logger.debug("%s is enabled.", self.name)
            return self._state

    def disable(self, reason: str) -> LifecycleState:
        with self._lock:
            if self._state.status is LifecycleStatus.DISABLED:
                return self._state
            self._state = LifecycleState(LifecycleStatus.DISABLED, reason)
        logger.warning("The %s has been disabled. %s", self.name, reason)
        return self._state

    def probe(
        self, runner: ProcessRunner, command: str = "yarn", timeout: float | None = None
    ) -> LifecycleState:
        """`<command> --help`로 실행 파일 존재를 확인한다 (한 번만).

        실패하면 Disabled로 전이한 뒤 InitializationError를 던진다.
        """
        with self._probe_lock:
            current = self.state
            if current.status is not LifecycleStatus.UNPROBED:
                return current

            try:
                result = runner.run(command, ["--help"], timeout=timeout)
            except ProcessInterrupted:
                raise
            except YarnAuditError as e:
                self.disable(f"{command} executable was not found.")
                raise InitializationError(f"Unable to run {command} --help: {e}") from e

            if result.returncode == 0:
                return self.enable()

            # 127(명령 없음)과 그 외 non-zero는 동일하게 처리
            if result.returncode == COMMAND_NOT_FOUND_EXIT_CODE:
                logger.debug(
                    "%s --help exited with %d (command not found)", command, result.returncode
                )
            else:
                logger.debug("%s --help exited with %d", command, result.returncode)
            self.disable(f"{command} executable was not found.")
            raise InitializationError(
                f"{command} --help exited with code {result.returncode}; "
                f"the {self.name} has been disabled"
            )
