"""Classify raw ledger-tail lines into typed events."""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from ledger_exporter.ingest.schemas import (
    PROPOSED_BLOCK,
    SKIPPED_BLOCK,
    IgnoredMessage,
    LogEvent,
    ParseFailure,
    ProposedBlock,
    SkippedBlock,
)

_EVENT_MODELS: dict[str, type[ProposedBlock] | type[SkippedBlock]] = {
    PROPOSED_BLOCK: ProposedBlock,
    SKIPPED_BLOCK: SkippedBlock,
}


def classify_line(line: str) -> LogEvent | ParseFailure:
    """Turn one JSON log line into an event or a parse failure.

    Records are shaped like ``{"timestamp": ..., "level": ..., "fields":
    {"message": "proposed_block", ...}, "target": "ledger_tail"}``; only
    ``fields`` is consulted. Message types other than proposed and skipped
    blocks are returned as ``IgnoredMessage``. The function has no side
    effects.
    """

    try:
        record = json.loads(line)
    except (ValueError, RecursionError) as exc:
        return ParseFailure(reason="invalid_json", detail=str(exc))
    if not isinstance(record, dict):
        return ParseFailure(reason="invalid_json", detail="expected a JSON object")

    fields = record.get("fields")
    if not isinstance(fields, dict):
        return ParseFailure(reason="missing_message", detail="record has no 'fields' object")
    message = fields.get("message")
    if not isinstance(message, str):
        return ParseFailure(reason="missing_message", detail="'fields.message' is missing or not a string")

    model = _EVENT_MODELS.get(message)
    if model is None:
        return IgnoredMessage(message=message)

    payload: dict[str, Any] = {key: value for key, value in fields.items() if key not in {"message", "kind"}}
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        missing = ", ".join(".".join(str(part) for part in error["loc"]) for error in exc.errors())
        return ParseFailure(reason="missing_field", detail=f"{message}: invalid or missing {missing}")
