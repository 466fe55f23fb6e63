"""npm semver 범위 포함 여부 판정 (packaging.version 기반)

지원 표현:
- 비교자 집합 (공백 구분): ">=1.0.0 <2.0.0", "<4.17.21"
- 합집합: "<1.2.3 || >=2.0.0 <2.1.0"
- caret / tilde: "^1.2.3", "~1.2"
- x-range: "1.2.x", "1", "*"
- hyphen: "1.2.3 - 2.3.4"

파싱할 수 없는 버전이나 범위는 일치하지 않는 것으로 본다.
"""

from __future__ import annotations

import operator
import re

from packaging.version import InvalidVersion, Version

_PARTIAL = re.compile(r"^v?(\d+|[xX*])(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?([-+].*)?$")
_HYPHEN = re.compile(r"^\s*(\S+)\s+-\s+(\S+)\s*$")
_OPERATOR_SPACE = re.compile(r"(<=|>=|<|>|=|\^|~>|~)\s+")
_TOKEN = re.compile(r"^(<=|>=|<|>|=|\^|~>|~)?(.*)$")
_RELEASE = re.compile(r"^(\d+(?:\.\d+)*)(.*)$")
_NUMERIC_PRERELEASE = re.compile(r"^-(\d+)(?:\.(\d+))?$")

_COMPARE = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
}

Comparator = tuple[str, Version]


def _partial(text: str) -> tuple[tuple[int, ...], str]:
    text = text.strip()
    if text in ("", "*", "x", "X"):
        return (), ""
    match = _PARTIAL.match(text)
    if not match:
        raise InvalidVersion(text)

    parts: list[int] = []
    for group in match.group(1, 2, 3):
        if group is None or group in ("x", "X", "*"):
            break
        parts.append(int(group))
    suffix = (match.group(4) or "") if len(parts) == 3 else ""
    return tuple(parts), suffix


def _pep440(release: str, suffix: str) -> str:
    """npm prerelease/build 접미사를 PEP 440 표기로 변환

    숫자 prerelease(`-0`, `-1.2`)는 PEP 440에서 post-release로 읽히므로
    release보다 앞에 정렬되도록 `a<N>[.post<M>]`로 바꾼다. build 메타데이터는 무시한다.
    """
    suffix = suffix.split("+", 1)[0]
    numeric = _NUMERIC_PRERELEASE.match(suffix)
    if numeric:
        pre, post = numeric.groups()
        suffix = f"a{pre}" + (f".post{post}" if post is not None else "")
    return release + suffix


def _version(parts: tuple[int, ...] | list[int], suffix: str = "") -> Version:
    padded = list(parts) + [0] * (3 - len(parts))
    return Version(_pep440(".".join(str(p) for p in padded), suffix))


def _bump(parts: tuple[int, ...], index: int) -> Version:
    bumped = list(parts[: index + 1])
    bumped[index] += 1
    return _version(bumped)


def _expand(op: str, text: str) -> list[Comparator]:
    parts, suffix = _partial(text)

    if not parts:
        if op in ("<", ">"):
            return [("<", Version("0"))]
        return []

    lower = _version(parts, suffix)

    if op == "^":
        if len(parts) == 1 or parts[0] > 0:
            upper = _bump(parts, 0)
        elif len(parts) == 2 or parts[1] > 0:
            upper = _bump(parts, 1)
        else:
            upper = _bump(parts, 2)
        return [(">=", lower), ("<", upper)]

    if op in ("~", "~>"):
        upper = _bump(parts, 0) if len(parts) == 1 else _bump(parts, 1)
        return [(">=", lower), ("<", upper)]

    if len(parts) == 3:
        return [("==" if op in ("", "=") else op, lower)]

    # 부분 버전 (1, 1.2)
    upper = _bump(parts, len(parts) - 1)
    if op in ("", "="):
        return [(">=", lower), ("<", upper)]
    if op == ">":
        return [(">=", upper)]
    if op == ">=":
        return [(">=", lower)]
    if op == "<":
        return [("<", lower)]
    return [("<", upper)]


def _parse_set(expr: str) -> list[Comparator]:
    hyphen = _HYPHEN.match(expr)
    if hyphen:
        low, high = hyphen.groups()
        high_parts, high_suffix = _partial(high)
        comparators = _expand(">=", low)
        if len(high_parts) == 3:
            comparators.append(("<=", _version(high_parts, high_suffix)))
        elif high_parts:
            comparators.append(("<", _bump(high_parts, len(high_parts) - 1)))
        return comparators

    comparators: list[Comparator] = []
    for token in _OPERATOR_SPACE.sub(r"\1", expr).split():
        op, text = _TOKEN.match(token).groups()
        comparators.extend(_expand(op or "", text))
    return comparators


def parse_version(value: str) -> Version | None:
    text = value.strip().lstrip("v=")
    release = _RELEASE.match(text)
    try:
        if release:
            return Version(_pep440(*release.groups()))
        return Version(text)
    except InvalidVersion:
        return None


def satisfies(version: str, range_expr: str) -> bool:
    """version이 npm 범위 표현식 range_expr에 포함되는지 확인"""
    installed = parse_version(version)
    if installed is None or range_expr is None:
        return False

    for alternative in range_expr.split("||"):
        try:
            comparators = _parse_set(alternative.strip())
        except InvalidVersion:
            continue
        if all(_COMPARE[op](installed, bound) for op, bound in comparators):
            return True
    return False
