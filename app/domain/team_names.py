"""
Team Name Normalization

Canonicalizes free-text team names so provider lookups succeed despite
nicknames, abbreviations, accents and inconsistent casing.

- normalize_team_name: alias table lookup, title-cased input on a miss
- team_name_similarity: normalized Levenshtein similarity in [0, 1]
- find_best_match: best candidate at or above a threshold
"""

import re
import unicodedata
from typing import Iterable, Optional, Tuple


# =============================================================================
# Alias Table (keys are cleaned: lowercase, no accents, no punctuation)
# =============================================================================

TEAM_ALIASES = {
    # France - Ligue 1
    "psg": "Paris Saint-Germain",
    "paris sg": "Paris Saint-Germain",
    "paris saint germain": "Paris Saint-Germain",
    "om": "Olympique de Marseille",
    "marseille": "Olympique de Marseille",
    "olympique marseille": "Olympique de Marseille",
    "ol": "Olympique Lyonnais",
    "lyon": "Olympique Lyonnais",
    "olympique lyon": "Olympique Lyonnais",
    "asse": "AS Saint-Étienne",
    "saint etienne": "AS Saint-Étienne",
    "as monaco": "AS Monaco",
    "monaco": "AS Monaco",
    "losc": "LOSC Lille",
    "lille": "LOSC Lille",
    "ogc nice": "OGC Nice",
    "nice": "OGC Nice",
    "stade rennais": "Stade Rennais",
    "rennes": "Stade Rennais",
    "rc lens": "RC Lens",
    "lens": "RC Lens",
    "fc nantes": "FC Nantes",
    "nantes": "FC Nantes",
    "montpellier hsc": "Montpellier HSC",
    "montpellier": "Montpellier HSC",
    "stade brestois": "Stade Brestois 29",
    "brest": "Stade Brestois 29",
    "rc strasbourg": "RC Strasbourg",
    "strasbourg": "RC Strasbourg",
    "toulouse fc": "Toulouse FC",
    "toulouse": "Toulouse FC",
    "stade de reims": "Stade de Reims",
    "reims": "Stade de Reims",
    "fc lorient": "FC Lorient",
    "lorient": "FC Lorient",
    "le havre ac": "Le Havre AC",
    "le havre": "Le Havre AC",
    "fc metz": "FC Metz",
    "metz": "FC Metz",
    "aj auxerre": "AJ Auxerre",
    "auxerre": "AJ Auxerre",
    "angers sco": "Angers SCO",
    "angers": "Angers SCO",

    # England - Premier League
    "man city": "Manchester City",
    "mancity": "Manchester City",
    "manchester city fc": "Manchester City",
    "man utd": "Manchester United",
    "man united": "Manchester United",
    "manutd": "Manchester United",
    "manchester united fc": "Manchester United",
    "liverpool fc": "Liverpool",
    "chelsea fc": "Chelsea",
    "arsenal fc": "Arsenal",
    "spurs": "Tottenham Hotspur",
    "tottenham": "Tottenham Hotspur",
    "newcastle": "Newcastle United",
    "newcastle utd": "Newcastle United",
    "aston villa fc": "Aston Villa",
    "brighton": "Brighton & Hove Albion",
    "brighton hove": "Brighton & Hove Albion",
    "west ham": "West Ham United",
    "west ham utd": "West Ham United",
    "wolves": "Wolverhampton Wanderers",
    "wolverhampton": "Wolverhampton Wanderers",
    "crystal palace fc": "Crystal Palace",
    "fulham fc": "Fulham",
    "brentford fc": "Brentford",
    "bournemouth": "AFC Bournemouth",
    "afc bournemouth": "AFC Bournemouth",
    "nottm forest": "Nottingham Forest",
    "nottingham": "Nottingham Forest",
    "everton fc": "Everton",
    "leicester": "Leicester City",
    "ipswich": "Ipswich Town",

    # Spain - La Liga
    "real": "Real Madrid",
    "real madrid cf": "Real Madrid",
    "barca": "FC Barcelona",
    "barcelona": "FC Barcelona",
    "fc barcelona": "FC Barcelona",
    "atletico": "Atlético Madrid",
    "atletico madrid": "Atlético Madrid",
    "atleti": "Atlético Madrid",
    "sevilla fc": "Sevilla",
    "la real": "Real Sociedad",
    "villarreal cf": "Villarreal",
    "betis": "Real Betis",
    "athletic": "Athletic Bilbao",
    "athletic club": "Athletic Bilbao",
    "valencia cf": "Valencia",
    "celta": "Celta Vigo",
    "getafe cf": "Getafe",
    "osasuna": "CA Osasuna",
    "rayo": "Rayo Vallecano",
    "girona fc": "Girona",
    "mallorca": "RCD Mallorca",
    "alaves": "Deportivo Alavés",
    "deportivo alaves": "Deportivo Alavés",
    "las palmas": "UD Las Palmas",

    # Germany - Bundesliga
    "bayern": "Bayern München",
    "bayern munich": "Bayern München",
    "fc bayern": "Bayern München",
    "bvb": "Borussia Dortmund",
    "dortmund": "Borussia Dortmund",
    "leipzig": "RB Leipzig",
    "leverkusen": "Bayer 04 Leverkusen",
    "bayer leverkusen": "Bayer 04 Leverkusen",
    "gladbach": "Borussia Mönchengladbach",
    "monchengladbach": "Borussia Mönchengladbach",
    "frankfurt": "Eintracht Frankfurt",
    "eintracht": "Eintracht Frankfurt",
    "wolfsburg": "VfL Wolfsburg",
    "freiburg": "SC Freiburg",
    "hoffenheim": "TSG Hoffenheim",
    "mainz": "1. FSV Mainz 05",
    "mainz 05": "1. FSV Mainz 05",
    "koln": "1. FC Köln",
    "cologne": "1. FC Köln",
    "fc koln": "1. FC Köln",
    "augsburg": "FC Augsburg",
    "union berlin": "1. FC Union Berlin",
    "bremen": "Werder Bremen",
    "stuttgart": "VfB Stuttgart",
    "bochum": "VfL Bochum",
    "heidenheim": "1. FC Heidenheim",

    # Italy - Serie A
    "juve": "Juventus",
    "juventus fc": "Juventus",
    "inter": "Inter Milan",
    "internazionale": "Inter Milan",
    "ac milan": "AC Milan",
    "milan": "AC Milan",
    "napoli": "SSC Napoli",
    "roma": "AS Roma",
    "lazio": "SS Lazio",
    "atalanta": "Atalanta BC",
    "fiorentina": "ACF Fiorentina",
    "torino": "Torino FC",
    "bologna": "Bologna FC",
    "udinese": "Udinese Calcio",
    "monza": "AC Monza",
    "empoli": "Empoli FC",
    "lecce": "US Lecce",
    "verona": "Hellas Verona",
    "cagliari": "Cagliari Calcio",
    "genoa": "Genoa CFC",
    "como": "Como 1907",
    "parma": "Parma Calcio",
}


# =============================================================================
# Normalization
# =============================================================================

def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def clean_team_name(name: str) -> str:
    """Lowercase, strip accents and punctuation, collapse whitespace."""
    cleaned = _strip_accents(name.lower().strip())
    cleaned = cleaned.replace("-", " ")
    cleaned = re.sub(r"[^\w\s]", "", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()


def _title_case(name: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in name.split())


def normalize_team_name(name: Optional[str]) -> str:
    """
    Normalize a team name to its canonical spelling.

    Args:
        name: Free-text team name (OCR output or user input)

    Returns:
        Canonical name from the alias table, or the title-cased input
    """
    if not name:
        return ""

    mapped = TEAM_ALIASES.get(clean_team_name(name))
    if mapped:
        return mapped

    return _title_case(name)


# =============================================================================
# Fuzzy Matching
# =============================================================================

def levenshtein_distance(s1: str, s2: str) -> int:
    """Edit distance using a single rolling row."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (c1 != c2),
            ))
        previous = current

    return previous[-1]


def team_name_similarity(name1: str, name2: str) -> float:
    """Similarity in [0, 1] between the normalized forms of two names."""
    n1 = normalize_team_name(name1).lower()
    n2 = normalize_team_name(name2).lower()

    if n1 == n2:
        return 1.0

    longer, shorter = (n1, n2) if len(n1) > len(n2) else (n2, n1)
    if not longer:
        return 1.0

    distance = levenshtein_distance(longer, shorter)
    return (len(longer) - distance) / len(longer)


def find_best_match(
    name: str,
    candidates: Iterable[str],
    threshold: float = 0.6,
) -> Optional[Tuple[str, float]]:
    """
    Find the candidate most similar to name.

    Ties keep the first candidate encountered.

    Returns:
        (candidate, score) or None when no candidate reaches the threshold
    """
    best: Optional[Tuple[str, float]] = None

    for candidate in candidates:
        score = team_name_similarity(name, candidate)
        if score >= threshold and (best is None or score > best[1]):
            best = (candidate, score)

    return best
