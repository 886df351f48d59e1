"""Commands and queries built by the transport layer from raw requests."""

from __future__ import annotations

import math
import re
import uuid
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..correlation import get_client_id, get_correlation_id
from ..primitives.exceptions import InvalidRequestError
from ..primitives.locking import ResourceIdentifier
from ..schema.fields import extract_known_fields

_VERTICAL_KEY = re.compile(r"^[a-z0-9][a-z0-9_-]*$")

# Wire names of the client load marker; the leading underscore form is what
# browser clients send, the bare form is accepted for API callers.
LOADED_AT_KEYS: tuple[str, ...] = ("_loadedAt", "loadedAt")


class _VerticalMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    vertical: str
    correlation_id: str | None = Field(default_factory=get_correlation_id)

    @field_validator("vertical")
    @classmethod
    def _check_vertical(cls, value: str) -> str:
        if not _VERTICAL_KEY.match(value):
            raise ValueError(f"invalid vertical key {value!r}")
        return value

    def get_critical_resources(self) -> list[ResourceIdentifier]:
        """The lock serializing loads and saves of this vertical."""
        return [ResourceIdentifier.for_vertical(self.vertical)]


class SaveDocumentCommand(_VerticalMessage):
    """
    Save the changed fields of a vertical document.

    ``changes`` holds only the fields the client changed, each with its
    complete value: a sub-key missing from an object value is a deletion.
    ``loaded_at`` is the client's load marker; ``0`` forces every field through.
    """

    command_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    changes: dict[str, Any]
    loaded_at: int = Field(default=0, ge=0)
    client_id: str | None = Field(default_factory=get_client_id)

    @field_validator("changes")
    @classmethod
    def _check_changes(cls, value: dict[str, Any]) -> dict[str, Any]:
        if not value:
            raise ValueError("No state fields to save")
        return value

    @classmethod
    def from_payload(
        cls,
        vertical: str,
        payload: Mapping[str, Any],
        *,
        client_id: str | None = None,
    ) -> SaveDocumentCommand:
        """Build a command from a raw save request body.

        Unknown keys are ignored; a body without any known document field is
        rejected before it can reach the merge engine.

        Raises:
            InvalidRequestError: If the body is not a usable save request.
        """
        if not isinstance(payload, Mapping):
            raise InvalidRequestError("Request body must be a JSON object")

        loaded_at: Any = 0
        for key in LOADED_AT_KEYS:
            if payload.get(key) is not None:
                loaded_at = payload[key]
                break
        if (
            isinstance(loaded_at, bool)
            or not isinstance(loaded_at, (int, float))
            or not math.isfinite(loaded_at)
        ):
            raise InvalidRequestError({"loadedAt": ["must be a number"]})

        fields = extract_known_fields(payload)
        if not fields:
            raise InvalidRequestError({"__root__": ["No state fields to save"]})

        data: dict[str, Any] = {
            "vertical": vertical,
            "changes": fields,
            "loaded_at": int(loaded_at),
        }
        if client_id is not None:
            data["client_id"] = client_id
        try:
            return cls(**data)
        except PydanticValidationError as exc:
            raise InvalidRequestError(_errors_by_field(exc)) from exc


class LoadDocumentQuery(_VerticalMessage):
    """Fetch the full, normalized document of a vertical with a fresh load marker."""


class PollDocumentQuery(_VerticalMessage):
    """Fetch only the change markers of a vertical, without the document body."""


def _errors_by_field(exc: PydanticValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        key = ".".join(str(part) for part in error["loc"]) or "__root__"
        errors.setdefault(key, []).append(error["msg"])
    return errors
