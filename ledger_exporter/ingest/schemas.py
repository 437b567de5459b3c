"""Pydantic schemas for ledger-tail log events."""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

PROPOSED_BLOCK = "proposed_block"
SKIPPED_BLOCK = "skipped_block"


def _optional_text(value: object) -> object:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


class _LedgerEvent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    round: StrictStr = Field(..., min_length=1)
    author: StrictStr = Field(..., min_length=1)
    now_ts_ms: str | None = None
    author_dns: str = ""
    author_address: str = ""

    @field_validator("author_dns", "author_address", mode="before")
    @classmethod
    def default_empty(cls, value: object) -> object:
        value = _optional_text(value)
        return "" if value is None else value

    @field_validator("now_ts_ms", mode="before")
    @classmethod
    def drop_malformed(cls, value: object) -> object:
        return _optional_text(value)


class ProposedBlock(_LedgerEvent):
    """A block proposal observed in the ledger."""

    kind: Literal["proposed_block"] = PROPOSED_BLOCK
    parent_round: str | None = None
    epoch: str | None = None
    seq_num: str | None = None
    num_tx: str | None = None
    block_ts_ms: str | None = None

    @field_validator("parent_round", "epoch", "seq_num", "num_tx", "block_ts_ms", mode="before")
    @classmethod
    def drop_malformed_block_fields(cls, value: object) -> object:
        return _optional_text(value)


class SkippedBlock(_LedgerEvent):
    """A round whose leader did not get a block into the ledger."""

    kind: Literal["skipped_block"] = SKIPPED_BLOCK


class IgnoredMessage(BaseModel):
    """Well-formed record whose message type carries no business counter."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["ignored"] = "ignored"
    message: str


FailureReason = Literal["invalid_json", "missing_message", "missing_field"]


class ParseFailure(BaseModel):
    """Line that could not be classified."""

    model_config = ConfigDict(frozen=True)

    reason: FailureReason
    detail: str = ""


LogEvent = Union[ProposedBlock, SkippedBlock, IgnoredMessage]
