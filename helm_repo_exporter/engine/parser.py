"""Decoding of chart repository index documents (``index.yaml``)."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
# Go marshals sub-microsecond precision; Python keeps at most six fraction digits
_FRACTION_PATTERN = re.compile(r"(\.\d{6})\d+")
# Scalars are loaded untyped, so YAML nulls arrive as text
_NULL_SCALARS = frozenset({"", "~", "null", "Null", "NULL"})


class ParseError(Exception):
    """Raised when an index document cannot be decoded as a whole."""


def _is_null(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() in _NULL_SCALARS)


def _normalise_timestamp(value: Any) -> datetime | None:
    if _is_null(value):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        text = _FRACTION_PATTERN.sub(r"\1", text)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"Invalid timestamp: {value!r}") from exc
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    else:
        try:
            parsed = parsed.astimezone(timezone.utc)
        except OverflowError as exc:
            raise ValueError(f"Timestamp out of range: {value!r}") from exc
    if parsed == _ZERO_TIME:
        return None
    return parsed


class VersionRecord(BaseModel):
    """A single chart version entry."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    version: str = ""
    description: str = ""
    icon: str = ""
    created: datetime | None = None
    urls: tuple[str, ...] = ()

    @field_validator("name", "version", "description", "icon", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if _is_null(value):
            return ""
        return value

    @field_validator("created", mode="before")
    @classmethod
    def _coerce_created(cls, value: Any) -> datetime | None:
        return _normalise_timestamp(value)

    @field_validator("urls", mode="before")
    @classmethod
    def _coerce_urls(cls, value: Any) -> Any:
        if _is_null(value):
            return ()
        return value


class IndexDocument(BaseModel):
    """Chart name to version entries, as published by a chart repository."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    api_version: str = Field(default="", alias="apiVersion")
    generated: datetime | None = None
    entries: dict[str, tuple[VersionRecord, ...]] = Field(default_factory=dict)

    @field_validator("api_version", mode="before")
    @classmethod
    def _coerce_api_version(cls, value: Any) -> Any:
        return "" if _is_null(value) else value

    @field_validator("generated", mode="before")
    @classmethod
    def _coerce_generated(cls, value: Any) -> datetime | None:
        return _normalise_timestamp(value)

    @field_validator("entries", mode="before")
    @classmethod
    def _coerce_entries(cls, value: Any) -> Any:
        if _is_null(value):
            return {}
        if isinstance(value, dict):
            return {name: [] if _is_null(versions) else versions for name, versions in value.items()}
        return value


def parse_index(payload: bytes | str) -> IndexDocument:
    """Decode ``payload`` into an :class:`IndexDocument`.

    Scalars are read as plain text (``1.10`` stays ``"1.10"``, ``yes`` stays
    ``"yes"``) and typed by the models. The document is accepted or rejected
    as a unit; any decode or structure problem raises :class:`ParseError`
    chained to the underlying cause.
    """

    try:
        data = yaml.load(payload, Loader=yaml.BaseLoader)
    except yaml.YAMLError as exc:
        raise ParseError(f"failed to parse index document: {exc}") from exc
    if _is_null(data):
        data = {}
    if not isinstance(data, dict):
        raise ParseError(
            f"failed to parse index document: expected a mapping, got {type(data).__name__}"
        )
    try:
        return IndexDocument.model_validate(data)
    except ValidationError as exc:
        raise ParseError(f"failed to parse index document: {exc}") from exc


__all__ = ["IndexDocument", "ParseError", "VersionRecord", "parse_index"]
