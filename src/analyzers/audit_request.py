"""yarn audit verbose 출력에서 audit request 복원

`yarn audit --offline --json --verbose`는 원격 레지스트리로 요청을 보내지
못하지만, 보냈을 요청 본문을 verbose 로그 레코드에 남긴다::

    {"type":"verbose","data":"Audit Request: {\\"name\\":...}"}

이 모듈만 해당 텍스트 형식에 의존한다.
"""

import json
import logging
from typing import Any

from .errors import AuditRequestNotFound, MalformedAuditRequest

logger = logging.getLogger(__name__)

AuditRequest = dict[str, Any]

AUDIT_REQUEST_MARKER = "Audit Request"
AUDIT_REQUEST_PREFIX = "Audit Request: "

# offline 모드에서 항상 출력되는 오류 (무시)
EXPECTED_ERROR = (
    '{"type":"error","data":"Can\'t make a request in offline mode '
    '(\\"https://registry.yarnpkg.com/-/npm/v1/security/audits\\")"}\n'
)


def is_benign_stderr(stderr: str) -> bool:
    """offline 모드의 예상된 오류 한 줄인지 확인"""
    return stderr.strip() == EXPECTED_ERROR.strip()


class AuditRequestExtractor:
    """verbose stdout에서 audit request JSON을 찾아 파싱"""

    def extract(self, stdout: str, stderr: str = "", source: str = "") -> AuditRequest:
        self.log_stderr(stderr, stdout, source)

        line = self.find_request_line(stdout)
        if line is None:
            raise AuditRequestNotFound(
                f"No '{AUDIT_REQUEST_MARKER}' line in yarn audit output"
                + (f" for {source}" if source else "")
            )

        try:
            record = json.loads(line)
        except json.JSONDecodeError as e:
            raise MalformedAuditRequest(f"Audit request log record is not valid JSON: {e}") from e

        data = record.get("data") if isinstance(record, dict) else None
        if not isinstance(data, str) or not data.startswith(AUDIT_REQUEST_PREFIX):
            raise MalformedAuditRequest("Audit request log record has no 'data' string")

        raw_request = data[len(AUDIT_REQUEST_PREFIX):]
        logger.debug("Audit Request: %s", raw_request)
        try:
            request = json.loads(raw_request)
        except json.JSONDecodeError as e:
            raise MalformedAuditRequest(f"Embedded audit request is not valid JSON: {e}") from e

        if not isinstance(request, dict):
            raise MalformedAuditRequest(
                f"Embedded audit request must be a JSON object, got {type(request).__name__}"
            )
        return request

    @staticmethod
    def find_request_line(stdout: str) -> str | None:
        # JSON 문자열 안의 U+2028 등에서 잘리지 않도록 "\n"으로만 나눈다
        for line in stdout.split("\n"):
            if AUDIT_REQUEST_MARKER in line:
                return line.rstrip("\r")
        return None

    @staticmethod
    def log_stderr(stderr: str, stdout: str = "", source: str = "") -> None:
        """예상된 오류가 아닌 stderr는 진단용으로 기록한다 (실패로 취급하지 않음)."""
        if not stderr or not stderr.strip() or is_benign_stderr(stderr):
            return
        logger.debug("Process Error Out%s: %s", f" ({source})" if source else "", stderr)
        logger.debug("Process Out: %s", stdout)
