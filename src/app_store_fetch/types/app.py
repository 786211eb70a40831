"""
Public application record.

Maps the upstream lookup/search record fields onto a stable schema.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_free(price: Any) -> bool | None:
    """Tell whether a price means the app is free.

    Returns:
        True for a numeric 0, False for any other number, None when the
        price is absent or not numeric (unknown)
    """
    if not _is_number(price):
        return None
    return price == 0


class App(BaseModel):
    """Application metadata in the public schema."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int | None = Field(default=None, description="Numeric store identifier")
    app_id: str | None = Field(default=None, description="Bundle identifier")
    title: str | None = None
    url: str | None = None
    description: str | None = None
    icon: str | None = None
    genres: list[str] = Field(default_factory=list)
    genre_ids: list[str] = Field(default_factory=list)
    primary_genre: str | None = None
    primary_genre_id: int | None = None
    content_rating: str | None = None
    languages: list[str] = Field(default_factory=list)
    size: str | None = Field(default=None, description="File size in bytes, as sent upstream")
    required_os_version: str | None = None
    released: str | None = None
    updated: str | None = None
    release_notes: str | None = None
    version: str | None = None
    price: float | None = None
    currency: str | None = None
    free: bool | None = Field(default=None, description="None when price is unknown")
    developer_id: int | None = None
    developer: str | None = None
    developer_url: str | None = None
    developer_website: str | None = None
    score: float | None = None
    reviews: int | None = None
    current_version_score: float | None = None
    current_version_reviews: int | None = None
    screenshots: list[str] = Field(default_factory=list)
    ipad_screenshots: list[str] = Field(default_factory=list)
    appletv_screenshots: list[str] = Field(default_factory=list)
    supported_devices: list[str] = Field(default_factory=list)

    @classmethod
    def from_upstream(cls, record: dict[str, Any]) -> App:
        """Build an App from an upstream lookup record.

        Pure mapping, no I/O; missing fields stay None or empty.
        """
        price = record.get("price")
        size = record.get("fileSizeBytes")
        return cls(
            id=record.get("trackId"),
            app_id=record.get("bundleId"),
            title=record.get("trackName"),
            url=record.get("trackViewUrl"),
            description=record.get("description"),
            icon=(
                record.get("artworkUrl512")
                or record.get("artworkUrl100")
                or record.get("artworkUrl60")
            ),
            genres=record.get("genres") or [],
            genre_ids=[str(g) for g in record.get("genreIds") or []],
            primary_genre=record.get("primaryGenreName"),
            primary_genre_id=record.get("primaryGenreId"),
            content_rating=record.get("contentAdvisoryRating"),
            languages=record.get("languageCodesISO2A") or [],
            size=str(size) if size is not None else None,
            required_os_version=record.get("minimumOsVersion"),
            released=record.get("releaseDate"),
            updated=record.get("currentVersionReleaseDate") or record.get("releaseDate"),
            release_notes=record.get("releaseNotes"),
            version=record.get("version"),
            price=price if _is_number(price) else None,
            currency=record.get("currency"),
            free=is_free(price),
            developer_id=record.get("artistId"),
            developer=record.get("artistName"),
            developer_url=record.get("artistViewUrl"),
            developer_website=record.get("sellerUrl"),
            score=record.get("averageUserRating"),
            reviews=record.get("userRatingCount"),
            current_version_score=record.get("averageUserRatingForCurrentVersion"),
            current_version_reviews=record.get("userRatingCountForCurrentVersion"),
            screenshots=record.get("screenshotUrls") or [],
            ipad_screenshots=record.get("ipadScreenshotUrls") or [],
            appletv_screenshots=record.get("appletvScreenshotUrls") or [],
            supported_devices=record.get("supportedDevices") or [],
        )
