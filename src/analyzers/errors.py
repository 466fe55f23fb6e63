"""Yarn audit 분석 오류 분류

각 예외는 ErrorKind 태그와 분석기 비활성화 여부를 가진다.
- 실행 파일 실행 실패, advisory 서비스 통신 실패: 분석기 비활성화
- 그 외 (출력 형식, manifest, payload, 응답 스키마): 현재 의존성만 실패
- 취소(ProcessInterrupted): 호출자에게 그대로 전파
"""

from enum import Enum


class ErrorKind(str, Enum):
    INITIALIZATION = "initialization"
    LAUNCH_FAILURE = "launch_failure"
    INTERRUPTED = "interrupted"
    TIMEOUT = "timeout"
    INVALID_TARGET = "invalid_target"
    AUDIT_REQUEST_NOT_FOUND = "audit_request_not_found"
    MALFORMED_AUDIT_REQUEST = "malformed_audit_request"
    MANIFEST = "manifest"
    PAYLOAD_SCHEMA = "payload_schema"
    TRANSPORT = "transport"
    AUTH_OR_QUOTA = "auth_or_quota"
    RESPONSE_SCHEMA = "response_schema"
    UNEXPECTED = "unexpected"


class YarnAuditError(Exception):
    """Yarn audit 분석 기본 예외"""

    kind = ErrorKind.UNEXPECTED
    disables_analyzer = False


class InitializationError(YarnAuditError):
    """시작 시 yarn 실행 파일 확인 실패"""

    kind = ErrorKind.INITIALIZATION
    disables_analyzer = True


class ProcessLaunchError(YarnAuditError):
    kind = ErrorKind.LAUNCH_FAILURE
    disables_analyzer = True


class ProcessInterrupted(YarnAuditError):
    kind = ErrorKind.INTERRUPTED


class ProcessTimeoutError(YarnAuditError):
    kind = ErrorKind.TIMEOUT


class InvalidTargetError(YarnAuditError):
    kind = ErrorKind.INVALID_TARGET


class AuditRequestNotFound(YarnAuditError):
    kind = ErrorKind.AUDIT_REQUEST_NOT_FOUND


class MalformedAuditRequest(YarnAuditError):
    kind = ErrorKind.MALFORMED_AUDIT_REQUEST


class ManifestError(YarnAuditError):
    kind = ErrorKind.MANIFEST


class PayloadSchemaError(YarnAuditError):
    kind = ErrorKind.PAYLOAD_SCHEMA


class TransportError(YarnAuditError):
    """advisory 서비스 연결/타임아웃/5xx 실패"""

    kind = ErrorKind.TRANSPORT
    disables_analyzer = True


class AuthOrQuotaError(YarnAuditError):
    """advisory 서비스가 요청을 거부함 (4xx)"""

    kind = ErrorKind.AUTH_OR_QUOTA

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ResponseSchemaError(YarnAuditError):
    kind = ErrorKind.RESPONSE_SCHEMA
