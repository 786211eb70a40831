"""Tests for types module."""

import json

import pytest
from pydantic import ValidationError

from app_store_fetch.lookup import build_lookup_url, parse_lookup_response
from app_store_fetch.markets import DEFAULT_STORE_ID, store_id
from app_store_fetch.types import App, is_free

UPSTREAM_RECORD = {
    "wrapperType": "software",
    "trackId": 553834731,
    "bundleId": "com.midasplayer.apps.candycrushsaga",
    "trackName": "Candy Crush Saga",
    "trackViewUrl": "https://apps.apple.com/us/app/candy-crush-saga/id553834731",
    "description": "Match three.",
    "artworkUrl60": "https://is1.mzstatic.com/60.png",
    "artworkUrl512": "https://is1.mzstatic.com/512.png",
    "genres": ["Games", "Puzzle"],
    "genreIds": ["6014", 7012],
    "primaryGenreName": "Games",
    "primaryGenreId": 6014,
    "contentAdvisoryRating": "4+",
    "languageCodesISO2A": ["EN", "FR"],
    "fileSizeBytes": "318767104",
    "minimumOsVersion": "12.0",
    "releaseDate": "2012-11-14T08:00:00Z",
    "currentVersionReleaseDate": "2024-05-01T07:00:00Z",
    "releaseNotes": "Bug fixes.",
    "version": "1.275.0",
    "price": 0.0,
    "currency": "USD",
    "artistId": 526656015,
    "artistName": "King",
    "artistViewUrl": "https://apps.apple.com/us/developer/king/id526656015",
    "sellerUrl": "https://king.com",
    "averageUserRating": 4.7,
    "userRatingCount": 3000000,
    "averageUserRatingForCurrentVersion": 4.7,
    "userRatingCountForCurrentVersion": 3000000,
    "screenshotUrls": ["https://is1.mzstatic.com/s1.png"],
    "ipadScreenshotUrls": [],
    "appletvScreenshotUrls": [],
    "supportedDevices": ["iPhone15-iPhone15"],
}


class TestIsFree:
    """Tests for price interpretation."""

    @pytest.mark.parametrize(
        ("price", "expected"),
        [
            (0, True),
            (0.0, True),
            (0.99, False),
            (None, None),
            ("0", None),
            ("Free", None),
            (True, None),
        ],
    )
    def test_is_free(self, price: object, expected: bool | None) -> None:
        """Test only numeric prices decide free/paid."""
        assert is_free(price) is expected


class TestApp:
    """Tests for App."""

    def test_from_upstream(self) -> None:
        """Test upstream fields map onto the public schema."""
        app = App.from_upstream(UPSTREAM_RECORD)
        assert app.id == 553834731
        assert app.app_id == "com.midasplayer.apps.candycrushsaga"
        assert app.title == "Candy Crush Saga"
        assert app.icon == "https://is1.mzstatic.com/512.png"
        assert app.genre_ids == ["6014", "7012"]
        assert app.size == "318767104"
        assert app.updated == "2024-05-01T07:00:00Z"
        assert app.free is True
        assert app.developer == "King"
        assert app.developer_website == "https://king.com"
        assert app.score == 4.7
        assert app.supported_devices == ["iPhone15-iPhone15"]

    def test_missing_fields(self) -> None:
        """Test an empty record yields empty values, not errors."""
        app = App.from_upstream({})
        assert app.id is None
        assert app.title is None
        assert app.free is None
        assert app.price is None
        assert app.genres == []
        assert app.screenshots == []

    def test_non_numeric_price(self) -> None:
        """Test a non-numeric price leaves free unknown."""
        app = App.from_upstream({"trackId": 1, "price": "Get"})
        assert app.price is None
        assert app.free is None

    def test_paid_app(self) -> None:
        """Test a positive price is not free."""
        app = App.from_upstream({"price": 4.99})
        assert app.free is False
        assert app.price == 4.99

    def test_updated_falls_back_to_release(self) -> None:
        """Test updated uses the release date when no version date is sent."""
        app = App.from_upstream({"releaseDate": "2020-01-01T00:00:00Z"})
        assert app.updated == "2020-01-01T00:00:00Z"

    def test_serialization(self) -> None:
        """Test the model dumps to plain data."""
        data = App.from_upstream(UPSTREAM_RECORD).model_dump()
        assert data["app_id"] == "com.midasplayer.apps.candycrushsaga"
        assert data["free"] is True


class TestMarkets:
    """Tests for storefront lookup."""

    def test_known_country(self) -> None:
        """Test country codes are case-insensitive."""
        assert store_id("GB") == "143444"
        assert store_id("jp") == "143462"

    def test_unknown_country(self) -> None:
        """Test unknown or empty codes fall back to the US storefront."""
        assert store_id("ZZ") == DEFAULT_STORE_ID
        assert store_id(None) == DEFAULT_STORE_ID
        assert store_id("") == "143441"


class TestLookupParsing:
    """Tests for lookup URL building and response parsing."""

    def test_build_lookup_url(self) -> None:
        """Test ids are joined and software entity is requested."""
        url = build_lookup_url([553834731, 284882215], country="gb", lang="en-gb")
        assert url.startswith("https://itunes.apple.com/lookup?")
        assert "id=553834731,284882215" in url
        assert "country=gb" in url
        assert "entity=software" in url
        assert "lang=en-gb" in url

    def test_build_lookup_url_by_bundle(self) -> None:
        """Test lookups by bundle id."""
        url = build_lookup_url(["com.example.app"], id_field="bundleId")
        assert "bundleId=com.example.app" in url
        assert "lang=" not in url

    def test_parse_keeps_software_only(self) -> None:
        """Test non-software records are dropped."""
        body = json.dumps(
            {
                "resultCount": 2,
                "results": [
                    UPSTREAM_RECORD,
                    {"wrapperType": "artist", "artistId": 526656015},
                ],
            }
        )
        apps = parse_lookup_response(body)
        assert [a.id for a in apps] == [553834731]

    def test_parse_empty(self) -> None:
        """Test an empty result set."""
        assert parse_lookup_response('{"resultCount": 0, "results": []}') == []

    def test_parse_mistyped_record(self) -> None:
        """Test a software record with a non-numeric id fails validation."""
        body = json.dumps({"results": [{"wrapperType": "software", "trackId": "abc"}]})
        with pytest.raises(ValidationError):
            parse_lookup_response(body)
