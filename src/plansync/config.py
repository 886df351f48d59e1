"""Runtime configuration for the planning document service."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

_HEX_COLOR = re.compile(r"^#[0-9a-f]{6}$")


class TrackDefinition(BaseModel):
    """One swimlane of a vertical's roadmap."""

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    color: str = "#6c5ce7"

    @field_validator("color")
    @classmethod
    def _check_color(cls, value: str) -> str:
        if not _HEX_COLOR.match(value):
            raise ValueError(f"color must be a lowercase #rrggbb value, got {value!r}")
        return value


DEFAULT_TRACK_CONFIG: tuple[TrackDefinition, ...] = (
    TrackDefinition(key="core-bonus", label="Core Bonus", color="#fdcb6e"),
    TrackDefinition(key="gateway", label="Gateway", color="#e84393"),
    TrackDefinition(key="seo-aff", label="SEO & AFF", color="#0984e3"),
)

DEFAULT_DISCIPLINES: tuple[str, ...] = ("backend", "frontend", "natives", "qa")

DEFAULT_VERTICALS: tuple[str, ...] = (
    "growth",
    "sportsbook",
    "casino",
    "account",
    "payments",
)


class SyncConfig(BaseModel):
    """Configuration shared by the save/load handlers and the client session.

    ``verticals`` may be set to ``None`` to accept any well-formed vertical key.
    """

    verticals: tuple[str, ...] | None = DEFAULT_VERTICALS
    track_config: tuple[TrackDefinition, ...] = DEFAULT_TRACK_CONFIG
    disciplines: tuple[str, ...] = DEFAULT_DISCIPLINES
    default_capacity: dict[str, int] = Field(
        default_factory=lambda: {"backend": 40, "frontend": 30, "natives": 25, "qa": 20}
    )
    # old track key -> new track key, applied once on load
    legacy_track_renames: dict[str, str] = Field(
        default_factory=lambda: {"gamification": "gateway"}
    )

    lock_timeout: float = 10.0
    lock_ttl: float = 30.0

    @property
    def track_keys(self) -> list[str]:
        return [track.key for track in self.track_config]

    def zero_disciplines(self) -> dict[str, int]:
        return dict.fromkeys(self.disciplines, 0)
