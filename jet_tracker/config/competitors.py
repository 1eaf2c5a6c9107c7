"""
Static search vocabulary for fighter procurement tracking.

Country names used in social queries, the language map used when asking
the discovery collaborator for outlets, well-known feed URLs, and the
fighter name aliases used for tag filtering.
"""

COUNTRY_NAMES: dict[str, str] = {
    "PT": "Portugal",
    "CZ": "Czech Republic",
    "ES": "Spain",
    "PL": "Poland",
    "SE": "Sweden",
}

COUNTRY_LANGUAGES: dict[str, str] = {
    "PT": "Portuguese",
    "ES": "Spanish",
    "FR": "French",
    "DE": "German",
    "IT": "Italian",
    "PL": "Polish",
    "SE": "Swedish",
    "FI": "Finnish",
    "NO": "Norwegian",
    "CZ": "Czech",
}

# Outlets whose feed path does not follow the /feed convention
KNOWN_FEEDS: dict[str, str] = {
    "RTP": "https://www.rtp.pt/noticias/rss",
    "SIC Notícias": "https://sicnoticias.pt/rss",
    "Público": "https://www.publico.pt/rss",
    "Expresso": "https://expresso.pt/rss",
    "Observador": "https://observador.pt/feed/",
    "ECO": "https://eco.sapo.pt/feed/",
}

KNOWN_DOMAIN_FEEDS: dict[str, str] = {
    "saab.com": "https://www.saabgroup.com/feed/",
    "lockheedmartin.com": "https://news.lockheedmartin.com/rss",
    "f35.com": "https://www.f35.com/feed",
}

# Aliases per canonical fighter name (lower-cased for matching)
FIGHTER_ALIASES: dict[str, tuple[str, ...]] = {
    "Gripen": ("gripen", "jas 39", "jas-39"),
    "F-35": ("f-35", "f35", "lightning ii"),
    "Rafale": ("rafale",),
    "F-16V": ("f-16v", "f16v", "f-16 block 70"),
    "Eurofighter": ("eurofighter", "typhoon"),
    "FA-50": ("fa-50", "f/a-50"),
}

RELEVANCE_KEYWORDS: tuple[str, ...] = (
    "Gripen",
    "JAS 39",
    "F-35",
    "F35",
    "Lockheed Martin",
    "Saab",
    "Força Aérea",
    "fighter",
    "caça",
    "avião de combate",
    "Air Force",
)


def country_name_for(country: str) -> str:
    """Return the English country name for a code, or the code itself."""
    return COUNTRY_NAMES.get(country.upper(), country.upper())


def language_for_country(country: str) -> str:
    """Return the primary language name for a country code."""
    return COUNTRY_LANGUAGES.get(country.upper(), "English")


def aliases_for(fighter: str) -> tuple[str, ...]:
    """Return lower-cased aliases for a fighter name, including the name itself."""
    known = FIGHTER_ALIASES.get(fighter, ())
    name = fighter.lower()
    return known if name in known else (name, *known)
