"""Signature-based inspection of untrusted request text.

The inspector is a heuristic first line of defence: it matches a fixed list of
known attack signatures (path traversal, script injection, SQL injection
tokens) and nothing more. It is not a security boundary. Encoded, obfuscated or
novel payloads will get past it, and ordinary text will sometimes trip it.
Handlers must still validate input and use parameterised queries.
"""

from collections.abc import Mapping
from dataclasses import dataclass
import re
from typing import Any, Optional
from urllib.parse import unquote_plus


@dataclass(frozen=True)
class Signature:
    """A named attack pattern."""

    name: str
    pattern: re.Pattern

    @classmethod
    def compile(cls, name: str, regex: str, flags: int = re.IGNORECASE):
        return cls(name=name, pattern=re.compile(regex, flags))

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


@dataclass(frozen=True)
class MatchResult:
    """Outcome of one inspection. ``signature`` is None when the text is clean."""

    signature: Optional[Signature] = None

    @property
    def suspicious(self) -> bool:
        return self.signature is not None

    @property
    def name(self) -> Optional[str]:
        return self.signature.name if self.signature else None

    def __bool__(self):
        return self.suspicious


CLEAN = MatchResult()


@dataclass(frozen=True)
class FieldMatch:
    """First offending field of a structured payload."""

    field: str
    signature: Signature


# Patterns that are never legitimate in a request URL
URL_SIGNATURES = (
    Signature.compile("path_traversal", r"\.\."),
    Signature.compile("script_tag", r"<script"),
    Signature.compile("javascript_uri", r"javascript:"),
    Signature.compile("data_uri", r"data:"),
    Signature.compile("sql_union_select", r"union.*select"),
    Signature.compile("code_exec", r"exec\s*\("),
    Signature.compile("code_eval", r"eval\s*\("),
)

# Markup injection in submitted fields
SCRIPT_SIGNATURES = (
    Signature.compile("script_tag", r"<script"),
    Signature.compile("javascript_uri", r"javascript:"),
    Signature.compile("data_uri", r"data:[a-z]+/[a-z0-9.+-]+[;,]"),
    Signature.compile("event_handler", r"\bon\w+\s*="),
)

SQL_SIGNATURES = (
    Signature.compile(
        "sql_keyword",
        r"\b(SELECT|INSERT|UPDATE|DELETE|DROP|CREATE|ALTER|EXEC|UNION)\b",
    ),
    Signature.compile("sql_comment", r"(--|/\*|\*/|;)"),
    Signature.compile("sql_tautology", r"\b(OR|AND)\s+\d+\s*=\s*\d+"),
    Signature.compile(
        "sql_string_tautology", r"\b(OR|AND)\s+['\"][^'\"]*['\"]\s*=\s*['\"]"
    ),
    Signature.compile("sql_timing", r"(\bWAITFOR\s+DELAY\b|\b(BENCHMARK|SLEEP)\s*\()"),
    Signature.compile("sql_schema", r"\b(INFORMATION_SCHEMA|SYS|MASTER|MSDB)\b"),
    Signature.compile("sql_stored_procedure", r"\b(XP_|SP_)\w+"),
    Signature.compile("sql_file_access", r"\b(LOAD_FILE|INTO\s+OUTFILE)\b"),
    Signature.compile("sql_cast", r"\b(CONVERT|CAST)\s*\("),
)

# Free text may legitimately contain "..", so payloads only match "../" and "..\"
PAYLOAD_SIGNATURES = (
    (Signature.compile("path_traversal", r"\.\.[/\\]"),)
    + SCRIPT_SIGNATURES
    + SQL_SIGNATURES
)


def compile_signatures(definitions) -> tuple[Signature, ...]:
    """Build signatures from ``[name, regex]`` pairs.

    Raises ``re.error`` for an invalid expression.
    """
    return tuple(Signature.compile(name, regex) for name, regex in definitions)


class PatternInspector:
    """Ordered signature matcher. The first matching signature wins."""

    def __init__(self, signatures):
        self.signatures = tuple(signatures)

    def inspect(self, text: str) -> MatchResult:
        if not text:
            return CLEAN
        for signature in self.signatures:
            if signature.matches(text):
                return MatchResult(signature)
        return CLEAN

    def inspect_all(self, text: str) -> list[Signature]:
        """Every matching signature, in order. Used for logging only."""
        if not text:
            return []
        return [s for s in self.signatures if s.matches(text)]

    def inspect_url(self, path: str, query_string: str = "") -> MatchResult:
        """Inspect a URL both as received and percent-decoded."""
        url = f"{path}?{query_string}" if query_string else path
        result = self.inspect(url)
        if result:
            return result
        decoded = unquote_plus(url)
        if decoded != url:
            return self.inspect(decoded)
        return CLEAN

    def inspect_fields(self, payload: Any, prefix: str = "") -> Optional[FieldMatch]:
        """Inspect every string value of a parsed payload.

        Nested objects and lists are walked depth first; nested field names are
        reported as dotted paths (``address.street``, ``tags.0``).
        """
        if isinstance(payload, Mapping):
            items = ((str(key), value) for key, value in payload.items())
        elif isinstance(payload, (list, tuple)):
            items = ((str(index), value) for index, value in enumerate(payload))
        elif isinstance(payload, str):
            result = self.inspect(payload)
            return FieldMatch(prefix, result.signature) if result else None
        else:
            return None

        for key, value in items:
            field = f"{prefix}.{key}" if prefix else key
            found = self.inspect_fields(value, field)
            if found:
                return found
        return None
