"""
Profile data models shared by both cache tiers.

The JSON shape (camelCase keys) is what the remote tier stores, so it may
be read by another process version: unknown keys are ignored and any new
field must have a default.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class UserProfile(_Record):
    """GitHub user information displayed on the card."""

    login: str
    name: str | None = None
    avatar_url: str = ""
    # Base64 data URL of the avatar for SVG embedding, None if the download failed
    avatar_data_url: str | None = None
    bio: str | None = None
    pronouns: str | None = None
    twitter: str | None = None


class StatSummary(_Record):
    """Aggregated counters from the user's GitHub activity."""

    stars: int = Field(default=0, ge=0)
    repos: int = Field(default=0, ge=0)
    prs: int = Field(default=0, ge=0)
    issues: int = Field(default=0, ge=0)
    commits: int = Field(default=0, ge=0)
    # Calendar year the commit count is scoped to
    commit_year: int


class LanguageStat(_Record):
    """A single language entry with total bytes and hex color."""

    name: str
    size: int = Field(ge=0)
    color: str


class ProfileRecord(_Record):
    """Combined profile data returned by the service and stored in both tiers."""

    user: UserProfile
    stats: StatSummary
    languages: list[LanguageStat] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "ProfileRecord":
        return cls.model_validate_json(raw)
