"""Pydantic models describing resolver payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .utils import normalize_episode_number, parse_episode_number, unescape_slashes


class CatalogEntry(BaseModel):
    """A title scraped from the catalog listing."""

    model_config = ConfigDict(frozen=True)

    title: str
    link: str


class RankedEntry(CatalogEntry):
    """A catalog entry annotated with its similarity to the search query."""

    similarity: float = Field(ge=0.0, le=1.0)


class ExternalLink(BaseModel):
    label: str
    url: str


class TitleDetail(BaseModel):
    """Structured metadata for a single title's detail page."""

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    japanese_title: str | None = Field(default=None, alias="japaneseTitle")
    synopsis: str | None = None
    poster_url: str | None = Field(default=None, alias="posterUrl")
    cover_url: str | None = Field(default=None, alias="coverUrl")
    attributes: dict[str, str] = Field(default_factory=dict)
    genres: list[str] = Field(default_factory=list)
    external_links: list[ExternalLink] = Field(
        default_factory=list, alias="externalLinks"
    )
    catalog_id: str = Field(alias="catalogId")
    total_episodes: int = Field(default=0, ge=0, alias="totalEpisodes")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class EpisodeRecord(BaseModel):
    """One entry of the paginated release listing."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    episode_number: int | float = Field(alias="episodeNumber")
    snapshot_url: str = Field(default="", alias="snapshotUrl")
    session_token: str = Field(alias="sessionToken")

    @classmethod
    def from_listing(
        cls, record: dict[str, Any], *, fallback_number: float
    ) -> "EpisodeRecord":
        """Build a record from a raw listing entry.

        ``fallback_number`` is used when neither ``episode`` nor ``number``
        carries a usable value.
        """

        number = parse_episode_number(record.get("episode"))
        if number is None:
            number = parse_episode_number(record.get("number"))
        if number is None:
            number = fallback_number
        snapshot = record.get("snapshot")
        return cls(
            episode_number=normalize_episode_number(number),
            snapshot_url=unescape_slashes(snapshot if isinstance(snapshot, str) else None),
            session_token=str(record.get("session") or "").strip(),
        )


class LinkBundle(BaseModel):
    """Playback and download links bucketed by audio track."""

    sub: dict[str, str] = Field(default_factory=dict)
    dub: dict[str, str] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.sub or self.dub)


class EpisodeResolution(BaseModel):
    """Response for a resolved episode."""

    model_config = ConfigDict(populate_by_name=True)

    catalog_id: str = Field(alias="catalogId")
    episode_number: int | float = Field(alias="episodeNumber")
    snapshot_url: str = Field(default="", alias="snapshotUrl")
    play_url: str = Field(alias="playUrl")
    links: LinkBundle = Field(default_factory=LinkBundle, alias="linkBundle")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
