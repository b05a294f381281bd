"""Client for the test-generation service and the payloads it exchanges."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, NamedTuple

import requests

DEFAULT_RETRY_AFTER = 60
_BODY_PREVIEW_LIMIT = 500


class ApiError(Exception):
    """Raised when the service cannot be reached or reports a failure."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.code = code
        self.message = message
        text = f"API error: {code} - {message}" if code is not None else message
        super().__init__(text)


class UnauthorizedError(ApiError):
    """The API key or access token was rejected."""

    def __init__(self) -> None:
        super().__init__("Unauthorized: Invalid or expired API key")


class RateLimitedError(ApiError):
    """The service asked the client to slow down."""

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(f"Rate limited: retry after {retry_after} seconds")


class QuotaExceededError(ApiError):
    """The account has used up its quota."""

    def __init__(self) -> None:
        super().__init__("Quota exceeded")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {_camel(key): _camelize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_camelize(item) for item in value]
    return value


def _check(value: Any, kind: type, key: str) -> Any:
    if kind is float:
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
        value = float(value) if ok else value
    elif kind is int:
        ok = isinstance(value, int) and not isinstance(value, bool) and value >= 0
    else:
        ok = isinstance(value, kind)
    if not ok:
        raise ValueError(f"invalid type for field `{key}`")
    return value


def _required(data: Any, key: str, kind: type) -> Any:
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    return _check(data[key], kind, key)


def _optional(data: dict, key: str, kind: type) -> Any:
    value = data.get(key)
    return None if value is None else _check(value, kind, key)


def _string_list(data: dict, key: str) -> list[str]:
    items = _required(data, key, list)
    return [_check(item, str, key) for item in items]


@dataclass
class DiffHunk:
    """One hunk of the diff sent for analysis."""

    file_path: str
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    content: str


@dataclass
class DiffPayload:
    hunks: list[DiffHunk]
    base_branch: str | None = None
    head_commit: str | None = None


@dataclass
class FileContext:
    """Content of a changed file given to the service as context."""

    path: str
    content: str
    language: str | None = None


@dataclass
class GenerateOptions:
    test_runner: str
    max_suggestions: int
    include_security: bool
    include_negative_paths: bool
    model_tier: str


@dataclass
class GenerateRequest:
    """Body of a request for test suggestions."""

    diff: DiffPayload
    context: list[FileContext]
    options: GenerateOptions
    policy_pack_id: str | None = None
    repo_identifier: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the request as the camelCase JSON object the service expects."""
        return _camelize(asdict(self))


@dataclass
class TestSuggestion:
    """A single generated test."""

    __test__ = False

    id: str
    file_path: str
    test_runner: str
    code: str
    description: str
    category: str
    confidence: float
    runtime_estimate: str
    risks_addressed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return _camelize(asdict(self))

    @classmethod
    def from_dict(cls, data: Any) -> TestSuggestion:
        return cls(
            id=_required(data, "id", str),
            file_path=_required(data, "filePath", str),
            test_runner=_required(data, "testRunner", str),
            code=_required(data, "code", str),
            description=_required(data, "description", str),
            category=_required(data, "category", str),
            confidence=_required(data, "confidence", float),
            runtime_estimate=_required(data, "runtimeEstimate", str),
            risks_addressed=_string_list(data, "risksAddressed"),
        )


@dataclass
class GenerateResponse:
    """Suggestions returned by the service."""

    suggestions: list[TestSuggestion]
    summary: str
    model_used: str
    escalated: bool
    tokens_used: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "suggestions": [s.to_dict() for s in self.suggestions],
            "summary": self.summary,
            "modelUsed": self.model_used,
            "escalated": self.escalated,
            "tokensUsed": self.tokens_used,
        }

    @classmethod
    def from_dict(cls, data: Any) -> GenerateResponse:
        raw = _required(data, "suggestions", list)
        return cls(
            suggestions=[TestSuggestion.from_dict(item) for item in raw],
            summary=_required(data, "summary", str),
            model_used=_required(data, "modelUsed", str),
            escalated=_required(data, "escalated", bool),
            tokens_used=_required(data, "tokensUsed", int),
        )


@dataclass
class UsagePeriod:
    start: str
    end: str


@dataclass
class UsageDetails:
    total_requests: int
    total_tokens: int


@dataclass
class UsageLimits:
    requests_per_minute: int
    requests_per_hour: int
    tokens_per_day: int
    tokens_remaining: int


@dataclass
class UsageResponse:
    """Usage figures for the current billing period."""

    period: UsagePeriod
    usage: UsageDetails
    limits: UsageLimits

    @classmethod
    def from_dict(cls, data: Any) -> UsageResponse:
        period = _required(data, "period", dict)
        usage = _required(data, "usage", dict)
        limits = _required(data, "limits", dict)
        return cls(
            period=UsagePeriod(
                start=_required(period, "start", str),
                end=_required(period, "end", str),
            ),
            usage=UsageDetails(
                total_requests=_required(usage, "totalRequests", int),
                total_tokens=_required(usage, "totalTokens", int),
            ),
            limits=UsageLimits(
                requests_per_minute=_required(limits, "requestsPerMinute", int),
                requests_per_hour=_required(limits, "requestsPerHour", int),
                tokens_per_day=_required(limits, "tokensPerDay", int),
                tokens_remaining=_required(limits, "tokensRemaining", int),
            ),
        )


class _ErrorBody(NamedTuple):
    code: str
    message: str
    retry_after: int | None


class _Envelope(NamedTuple):
    success: bool
    data: Any
    error: _ErrorBody | None


def _parse_envelope(text: str, parse_data: Callable[[Any], Any]) -> _Envelope:
    body = json.loads(text)
    success = _required(body, "success", bool)
    meta = _required(body, "meta", dict)
    _required(meta, "requestId", str)
    _required(meta, "timestamp", str)
    _optional(meta, "tokensUsed", int)

    raw_data = body.get("data")
    data = None if raw_data is None else parse_data(raw_data)

    raw_error = body.get("error")
    error = None
    if raw_error is not None:
        error = _ErrorBody(
            code=_required(raw_error, "code", str),
            message=_required(raw_error, "message", str),
            retry_after=_optional(raw_error, "retryAfter", int),
        )
    return _Envelope(success, data, error)


def _no_data() -> ApiError:
    return ApiError("Response contained no data", code="NO_DATA")


class ApiClient:
    """Talks to the test-generation service with a bearer token."""

    def __init__(self, base_url: str, api_key: str) -> None:
        self.base_url = base_url
        self.api_key = api_key
        self._session = requests.Session()

    def _auth_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def generate(self, request: GenerateRequest) -> GenerateResponse:
        """Ask the service for test suggestions covering a diff."""
        url = f"{self.base_url}/api/v1/generate"
        headers = {**self._auth_header(), "Content-Type": "application/json"}
        try:
            response = self._session.post(url, headers=headers, data=json.dumps(request.to_dict()))
            if response.status_code == 401:
                raise UnauthorizedError()
            if response.status_code == 429:
                header = (response.headers.get("Retry-After") or "").strip()
                retry_after = int(header) if header.isdigit() else DEFAULT_RETRY_AFTER
                raise RateLimitedError(retry_after)
            text = response.text
        except requests.RequestException as exc:
            raise ApiError(f"HTTP request failed: {exc}") from exc

        try:
            envelope = _parse_envelope(text, GenerateResponse.from_dict)
        except (ValueError, TypeError) as exc:
            raise ApiError(
                f"Failed to parse response: {exc}. Body: {text[:_BODY_PREVIEW_LIMIT]}",
                code="PARSE_ERROR",
            ) from exc

        if not envelope.success and envelope.error is not None:
            if envelope.error.code == "QUOTA_EXCEEDED":
                raise QuotaExceededError()
            raise ApiError(envelope.error.message, code=envelope.error.code)

        if envelope.data is None:
            raise _no_data()
        return envelope.data

    def get_usage(self) -> UsageResponse:
        """Fetch usage figures for the current period."""
        url = f"{self.base_url}/api/v1/usage"
        try:
            response = self._session.get(url, headers=self._auth_header())
            if response.status_code == 401:
                raise UnauthorizedError()
            envelope = _parse_envelope(response.text, UsageResponse.from_dict)
        except (requests.RequestException, ValueError, TypeError) as exc:
            raise ApiError(f"HTTP request failed: {exc}") from exc

        if envelope.data is None:
            raise _no_data()
        return envelope.data