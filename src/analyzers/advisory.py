"""NPM Audit API 클라이언트"""

import logging
from typing import Any

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import AuthOrQuotaError, ResponseSchemaError, TransportError
from .payload import AuditPayload

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_URL = "https://registry.npmjs.org/-/npm/v1/security/audits"
DEFAULT_USER_AGENT = "yarn-audit-analyzer/0.1.0"


class Advisory(BaseModel):
    """advisory 서비스가 반환한 취약점 레코드"""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    module_name: str = Field(validation_alias=AliasChoices("module_name", "name"))
    vulnerable_versions: str = Field(validation_alias=AliasChoices("vulnerable_versions", "range"))
    severity: str
    patched_versions: str | None = None
    title: str | None = None
    overview: str | None = None
    recommendation: str | None = None
    url: str | None = None
    github_advisory_id: str | None = None
    cves: list[str] = Field(default_factory=list)
    cwe: list[str] = Field(default_factory=list)
    cvss: dict[str, Any] | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("cwe", "cves", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @property
    def identifiers(self) -> list[str]:
        identifiers: list[str] = []
        for value in [self.github_advisory_id, self.id, *self.cves]:
            if value and value not in identifiers:
                identifiers.append(value)
        return identifiers

    @property
    def cvss_score(self) -> float | None:
        if not self.cvss:
            return None
        score = self.cvss.get("score")
        return float(score) if isinstance(score, (int, float)) else None

    @property
    def cvss_vector(self) -> str | None:
        if not self.cvss:
            return None
        vector = self.cvss.get("vectorString")
        return vector if isinstance(vector, str) else None


class AdvisoryClient:
    """payload를 advisory 서비스에 제출하고 advisory 목록을 반환한다.

    재시도는 하지 않는다 (호출자의 책임).
    """

    def __init__(
        self,
        url: str = DEFAULT_AUDIT_URL,
        timeout: float = 30,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.url = url
        self.timeout = timeout
        self.user_agent = user_agent

    def submit(self, payload: AuditPayload) -> list[Advisory]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }
        logger.debug("Submitting audit payload to %s", self.url)

        try:
            response = httpx.post(
                self.url,
                content=payload.to_json(),
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TransportError as e:
            raise TransportError(f"Failed to connect to the NPM Audit API ({self.url}): {e}") from e

        status = response.status_code
        if status >= 500:
            raise TransportError(f"NPM Audit API unavailable (HTTP {status})")
        if status >= 400:
            raise AuthOrQuotaError(f"NPM Audit API rejected the request (HTTP {status})", status)

        try:
            data = response.json()
        except ValueError as e:
            raise ResponseSchemaError(f"NPM Audit API returned invalid JSON: {e}") from e

        advisories = self.parse_advisories(data)
        logger.debug("NPM Audit API returned %d advisories", len(advisories))
        return advisories

    @staticmethod
    def parse_advisories(data: Any) -> list[Advisory]:
        """응답 본문 파싱

        - list[advisory]
        - {"advisories": {"<id>": advisory, ...}} (npm audit v1)
        - {"advisories": [advisory, ...]}
        """
        if isinstance(data, list):
            entries = data
        elif isinstance(data, dict) and "advisories" in data:
            raw = data["advisories"]
            if isinstance(raw, dict):
                entries = list(raw.values())
            elif isinstance(raw, list):
                entries = raw
            else:
                raise ResponseSchemaError("'advisories' must be an object or an array")
        else:
            raise ResponseSchemaError("Response contains no advisories array")

        advisories: list[Advisory] = []
        for entry in entries:
            try:
                advisories.append(Advisory.model_validate(entry))
            except ValidationError as e:
                raise ResponseSchemaError(f"Invalid advisory entry: {e}") from e
        return advisories
