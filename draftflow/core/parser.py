"""Turn free-form model output into typed records.

Strategy, in order:

1. parse the text as JSON, then again with one enclosing code fence removed;
2. extract the first ``{...}`` or ``[...]`` span and parse that;
3. give up with :class:`UnparsableResponse`.

Records are then normalized against a :class:`RecordSchema`, which remaps
known aliases (models like to say ``ration`` for ``rationale``) and fills
every missing field with its documented default.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..errors import UnparsableResponse

logger = logging.getLogger(__name__)

OUTER_FENCE_RE = re.compile(r"^\s*```[\w-]*[ \t]*\n?(.*?)\n?```\s*$", re.DOTALL)
OBJECT_RE = re.compile(r"\{[\s\S]*\}")
ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def strip_fences(raw: str) -> str:
    """Remove one enclosing code fence; fences inside the payload stay."""
    match = OUTER_FENCE_RE.match(raw)
    return (match.group(1) if match else raw).strip()


def _balanced_span(text: str, start: int) -> Optional[str]:
    """Return the bracket-balanced span opening at ``start``, if it closes."""
    pairs = {"{": "}", "[": "]"}
    stack = []
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in pairs:
            stack.append(pairs[ch])
        elif ch in "}]":
            if not stack or stack.pop() != ch:
                return None
            if not stack:
                return text[start : i + 1]
    return None


def _candidate_spans(text: str) -> List[str]:
    obj = OBJECT_RE.search(text)
    arr = ARRAY_RE.search(text)
    matches = sorted((m for m in (obj, arr) if m), key=lambda m: m.start())
    if not matches:
        return []

    first = matches[0]
    spans = [first.group(0)]
    balanced = _balanced_span(text, first.start())
    if balanced and balanced != spans[0]:
        spans.append(balanced)
    return spans


def extract_json(raw: str) -> Any:
    """Parse JSON out of model output or raise :class:`UnparsableResponse`."""
    if not raw or not raw.strip():
        raise UnparsableResponse("Empty response from model", raw=raw or "")

    cleaned = strip_fences(raw)
    for candidate in (raw, cleaned):
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    for span in _candidate_spans(cleaned):
        try:
            return json.loads(span)
        except json.JSONDecodeError as e:
            logger.debug(f"Extracted span is not valid JSON: {e}")

    raise UnparsableResponse(
        f"Could not parse AI response as JSON. Content: {raw[:200]}", raw=raw
    )


@dataclass(frozen=True)
class FieldSpec:
    """One expected field: its type, default, and accepted aliases."""

    default: Any
    type: type = str
    aliases: Tuple[str, ...] = ()

    def coerce(self, value: Any) -> Any:
        if value is None or value == "":
            return self._default()
        try:
            if self.type is int:
                return int(float(value))
            if self.type is float:
                return float(value)
            if self.type is list:
                if isinstance(value, list):
                    return [str(v) for v in value if v not in (None, "")]
                return [str(value)]
            if isinstance(value, (dict, list)):
                return json.dumps(value, ensure_ascii=False)
            return str(value)
        except (TypeError, ValueError):
            return self._default()

    def _default(self) -> Any:
        return list(self.default) if isinstance(self.default, list) else self.default


@dataclass
class RecordSchema:
    """Field-level tolerance for one record shape."""

    fields: Dict[str, FieldSpec] = field(default_factory=dict)

    def normalize(self, record: Dict[str, Any]) -> Dict[str, Any]:
        result = {}
        for name, spec in self.fields.items():
            value = record.get(name)
            if value in (None, ""):
                for alias in spec.aliases:
                    if record.get(alias) not in (None, ""):
                        value = record[alias]
                        break
            result[name] = spec.coerce(value)
        return result

    def normalize_many(self, records: Any) -> List[Dict[str, Any]]:
        if not isinstance(records, list):
            return []
        return [self.normalize(r) for r in records if isinstance(r, dict)]


def parse_record(raw: str, schema: RecordSchema) -> Dict[str, Any]:
    """Parse a single JSON object and normalize it."""
    payload = extract_json(raw)
    if isinstance(payload, list):
        payload = next((p for p in payload if isinstance(p, dict)), None)
    if not isinstance(payload, dict):
        raise UnparsableResponse("Expected a JSON object", raw=raw)
    return schema.normalize(payload)


def parse_records(
    raw: str, schema: RecordSchema, key: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Parse a JSON array of records, bare or nested under ``key``."""
    payload = extract_json(raw)

    if isinstance(payload, dict):
        if key and isinstance(payload.get(key), list):
            payload = payload[key]
        else:
            payload = next(
                (v for v in payload.values() if isinstance(v, list)), None
            )

    records = schema.normalize_many(payload)
    if not records:
        raise UnparsableResponse("Expected a JSON array of objects", raw=raw)
    return records
