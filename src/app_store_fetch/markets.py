"""
App Store storefront identifiers by country.
"""

from __future__ import annotations

DEFAULT_STORE_ID = "143441"

MARKETS: dict[str, str] = {
    "US": "143441",
    "FR": "143442",
    "DE": "143443",
    "GB": "143444",
    "AT": "143445",
    "BE": "143446",
    "FI": "143447",
    "GR": "143448",
    "IE": "143449",
    "IT": "143450",
    "LU": "143451",
    "NL": "143452",
    "PT": "143453",
    "ES": "143454",
    "CA": "143455",
    "SE": "143456",
    "NO": "143457",
    "DK": "143458",
    "CH": "143459",
    "AU": "143460",
    "NZ": "143461",
    "JP": "143462",
    "HK": "143463",
    "SG": "143464",
    "CN": "143465",
    "KR": "143466",
    "IN": "143467",
    "MX": "143468",
    "RU": "143469",
    "TW": "143470",
    "VN": "143471",
    "ZA": "143472",
    "MY": "143473",
    "PH": "143474",
    "TH": "143475",
    "ID": "143476",
    "PK": "143477",
    "PL": "143478",
    "SA": "143479",
    "TR": "143480",
    "AE": "143481",
    "HU": "143482",
    "CL": "143483",
    "CZ": "143489",
    "IL": "143491",
    "UA": "143492",
    "EG": "143516",
    "AR": "143505",
    "BR": "143503",
    "CO": "143501",
    "PE": "143507",
    "RO": "143487",
    "NG": "143561",
}


def store_id(country_code: str | None) -> str:
    """Get the storefront identifier for a country code.

    Args:
        country_code: ISO 3166-1 alpha-2 code, any case

    Returns:
        Storefront identifier, the US storefront for unknown or empty codes
    """
    if not country_code:
        return DEFAULT_STORE_ID
    return MARKETS.get(country_code.upper(), DEFAULT_STORE_ID)
