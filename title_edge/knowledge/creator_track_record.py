from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from title_edge.engine.canonicalizer import canonicalize, matching_key
from title_edge.models import TrackRecordBoost

DEFAULT_BOOST_SCALE = 45.0

# Map entries this short ("You", "Leo") only match a whole canonical title.
_SHORT_TITLE_LENGTH = 4


@dataclass(frozen=True)
class CreatorRecord:
    hit_rate: float
    show_count: int
    notable_titles: List[str] = field(default_factory=list)
    reason: str = ""
    content_type: str = "TV"


# Share of a creator's streaming releases that reached #1 globally.
_CREATOR_TRACK_RECORD: Dict[str, CreatorRecord] = {
    "Harlan Coben": CreatorRecord(
        hit_rate=0.95,
        show_count=12,
        notable_titles=["Fool Me Once", "The Stranger", "Stay Close", "Safe", "Hold Tight", "Run Away"],
        reason="Every Harlan Coben adaptation has reached #1 globally.",
    ),
    "Shonda Rhimes": CreatorRecord(
        hit_rate=0.85,
        show_count=6,
        notable_titles=["Bridgerton", "Queen Charlotte", "Inventing Anna"],
        reason="Shondaland output; Bridgerton is one of the most-watched series ever.",
    ),
    "Ryan Murphy": CreatorRecord(
        hit_rate=0.80,
        show_count=10,
        notable_titles=["Dahmer", "The Watcher", "Monsters", "Ratched"],
        reason="True-crime and horror anthologies that open at the top of the chart.",
    ),
    "Mike Flanagan": CreatorRecord(
        hit_rate=0.70,
        show_count=5,
        notable_titles=["The Haunting of Hill House", "Midnight Mass", "The Fall of the House of Usher"],
        reason="Horror auteur with a loyal following; every release generates buzz.",
    ),
    "The Duffer Brothers": CreatorRecord(
        hit_rate=0.95,
        show_count=2,
        notable_titles=["Stranger Things"],
        reason="Stranger Things is the platform's biggest series.",
    ),
    "Darren Star": CreatorRecord(
        hit_rate=0.65,
        show_count=3,
        notable_titles=["Emily in Paris"],
        reason="Emily in Paris charts consistently each season.",
    ),
    "Greg Berlanti": CreatorRecord(
        hit_rate=0.50,
        show_count=5,
        notable_titles=["You", "Griselda"],
        reason="Prolific producer; You became a breakout hit.",
    ),
    "David Fincher": CreatorRecord(
        hit_rate=0.45,
        show_count=3,
        notable_titles=["Mindhunter", "House of Cards"],
        reason="Prestige draw without guaranteed mass appeal.",
        content_type="BOTH",
    ),
    "Alice Feeney": CreatorRecord(
        hit_rate=0.75,
        show_count=2,
        notable_titles=["His & Hers", "Rock Paper Scissors"],
        reason="Bestselling thriller author with an A-list adaptation cast.",
    ),
    "Colleen Hoover": CreatorRecord(
        hit_rate=0.70,
        show_count=3,
        notable_titles=["It Ends With Us", "Verity", "Ugly Love"],
        reason="BookTok phenomenon with a built-in audience.",
        content_type="MOVIE",
    ),
    "Stephen King": CreatorRecord(
        hit_rate=0.55,
        show_count=15,
        notable_titles=["1922", "Gerald's Game", "In the Tall Grass"],
        reason="Built-in audience, uneven adaptations.",
        content_type="BOTH",
    ),
    "Zack Snyder": CreatorRecord(
        hit_rate=0.80,
        show_count=4,
        notable_titles=["Army of the Dead", "Rebel Moon", "Army of Thieves"],
        reason="Large fan following; films chart high on release.",
        content_type="MOVIE",
    ),
    "The Russo Brothers": CreatorRecord(
        hit_rate=0.85,
        show_count=3,
        notable_titles=["The Gray Man", "Extraction"],
        reason="Action blockbusters that dominate launch weeks.",
        content_type="MOVIE",
    ),
    "Rian Johnson": CreatorRecord(
        hit_rate=0.85,
        show_count=2,
        notable_titles=["Glass Onion", "Knives Out"],
        reason="Knives Out sequels held #1 for weeks.",
        content_type="MOVIE",
    ),
    "Happy Madison": CreatorRecord(
        hit_rate=0.95,
        show_count=12,
        notable_titles=["Murder Mystery", "Hubie Halloween", "The Wrong Missy", "Hustle"],
        reason="Adam Sandler's company; nearly every film opens at #1.",
        content_type="MOVIE",
    ),
    "Jenji Kohan": CreatorRecord(
        hit_rate=0.55,
        show_count=4,
        notable_titles=["Orange is the New Black", "Social Studies"],
        reason="Orange is the New Black was one of the first hit originals on the platform.",
    ),
    "Taylor Jenkins Reid": CreatorRecord(
        hit_rate=0.65,
        show_count=2,
        notable_titles=["Daisy Jones & The Six", "The Seven Husbands of Evelyn Hugo"],
        reason="Bestselling author with a strong adaptation track record.",
    ),
    "Sam Hargrave": CreatorRecord(
        hit_rate=0.90,
        show_count=2,
        notable_titles=["Extraction", "Extraction 2"],
        reason="Action director whose Extraction films dominated the chart.",
        content_type="MOVIE",
    ),
    "Michael Bay": CreatorRecord(
        hit_rate=0.70,
        show_count=2,
        notable_titles=["6 Underground", "Ambulance"],
        reason="Action blockbuster director with high viewership.",
        content_type="MOVIE",
    ),
    "Adam McKay": CreatorRecord(
        hit_rate=0.75,
        show_count=2,
        notable_titles=["Don't Look Up", "The Big Short"],
        reason="Awards-caliber director with star-studded casts.",
        content_type="MOVIE",
    ),
    "Noah Baumbach": CreatorRecord(
        hit_rate=0.60,
        show_count=3,
        notable_titles=["Marriage Story", "White Noise", "The Meyerowitz Stories"],
        reason="Prestige director; awards buzz drives viewership.",
        content_type="MOVIE",
    ),
    "AGBO Films": CreatorRecord(
        hit_rate=0.85,
        show_count=4,
        notable_titles=["Citadel"],
        reason="Russo Brothers' studio behind several chart-topping releases.",
        content_type="BOTH",
    ),
}

_TITLE_CREATOR_MAP: Dict[str, str] = {
    "Run Away": "Harlan Coben",
    "Fool Me Once": "Harlan Coben",
    "The Stranger": "Harlan Coben",
    "Stay Close": "Harlan Coben",
    "Safe": "Harlan Coben",
    "Hold Tight": "Harlan Coben",
    "The Woods": "Harlan Coben",
    "Gone for Good": "Harlan Coben",
    "The Innocent": "Harlan Coben",
    "Shelter": "Harlan Coben",
    "Bridgerton": "Shonda Rhimes",
    "Queen Charlotte": "Shonda Rhimes",
    "Inventing Anna": "Shonda Rhimes",
    "Dahmer": "Ryan Murphy",
    "Monster": "Ryan Murphy",
    "Monsters": "Ryan Murphy",
    "The Watcher": "Ryan Murphy",
    "Ratched": "Ryan Murphy",
    "The Haunting of Hill House": "Mike Flanagan",
    "The Haunting of Bly Manor": "Mike Flanagan",
    "Midnight Mass": "Mike Flanagan",
    "The Midnight Club": "Mike Flanagan",
    "The Fall of the House of Usher": "Mike Flanagan",
    "Stranger Things": "The Duffer Brothers",
    "Emily in Paris": "Darren Star",
    "You": "Greg Berlanti",
    "Griselda": "Greg Berlanti",
    "His & Hers": "Alice Feeney",
    "His and Hers": "Alice Feeney",
    "Rock Paper Scissors": "Alice Feeney",
    "Daisy Jones": "Taylor Jenkins Reid",
    "Seven Husbands": "Taylor Jenkins Reid",
    "Evelyn Hugo": "Taylor Jenkins Reid",
    "It Ends With Us": "Colleen Hoover",
    "Verity": "Colleen Hoover",
    "Ugly Love": "Colleen Hoover",
    "Gerald's Game": "Stephen King",
    "1922": "Stephen King",
    "In the Tall Grass": "Stephen King",
    "Mr. Harrigan's Phone": "Stephen King",
    "The Mist": "Stephen King",
    "Army of the Dead": "Zack Snyder",
    "Rebel Moon": "Zack Snyder",
    "Army of Thieves": "Zack Snyder",
    "The Gray Man": "The Russo Brothers",
    "Extraction": "The Russo Brothers",
    "Citadel": "AGBO Films",
    "Glass Onion": "Rian Johnson",
    "Knives Out": "Rian Johnson",
    "Don't Look Up": "Adam McKay",
    "Marriage Story": "Noah Baumbach",
    "White Noise": "Noah Baumbach",
    "6 Underground": "Michael Bay",
    "Murder Mystery": "Happy Madison",
    "Hubie Halloween": "Happy Madison",
    "The Wrong Missy": "Happy Madison",
    "Hustle": "Happy Madison",
    "You Are So Not Invited": "Happy Madison",
    "Leo": "Happy Madison",
}


def get_creator_track_record(title: str, aliases: Iterable[str] = ()) -> Optional[Tuple[str, CreatorRecord]]:
    raw_names = [n for n in [title, *aliases] if n]
    if not raw_names:
        return None
    names = [n.lower() for n in raw_names]
    canonical_keys = {canonicalize(n).normalized for n in raw_names}

    # Longest titles first so "You Are So Not Invited" wins over "You".
    for known_title in sorted(_TITLE_CREATOR_MAP, key=len, reverse=True):
        if not _title_matches(known_title, names, canonical_keys):
            continue
        creator = _TITLE_CREATOR_MAP[known_title]
        record = _CREATOR_TRACK_RECORD.get(creator)
        if record is not None:
            return creator, record

    for creator, record in _CREATOR_TRACK_RECORD.items():
        if any(_phrase_match(name, creator) for name in names):
            return creator, record
    return None


def creator_momentum_boost(
    title: str,
    aliases: Iterable[str] = (),
    scale: float = DEFAULT_BOOST_SCALE,
) -> Optional[TrackRecordBoost]:
    found = get_creator_track_record(title, aliases)
    if found is None:
        return None
    creator, record = found
    return TrackRecordBoost(
        creator=creator,
        hit_rate=record.hit_rate,
        boost=int(round(record.hit_rate * scale)),
        reason=record.reason,
    )


def _title_matches(known_title: str, names: List[str], canonical_keys: Set[str]) -> bool:
    key = matching_key(known_title)
    if len(key) <= _SHORT_TITLE_LENGTH:
        return key in canonical_keys
    return any(_phrase_match(name, known_title) for name in names)


def _phrase_match(text: str, phrase: str) -> bool:
    needle = phrase.lower().strip()
    if not needle:
        return False
    pattern = rf"(?<![a-z0-9]){re.escape(needle)}(?![a-z0-9])"
    return re.search(pattern, text) is not None
