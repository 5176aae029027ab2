"""Static two-tier genre taxonomy with Apple Music genre IDs.

Top-level IDs: 14 Pop, 21 Rock, 18 Hip-Hop/Rap, 7 Electronic, 11 Jazz,
6 Country, 15 R&B/Soul, 5 Classical, 12 Latin. Subcategory IDs come from the
Apple Music catalog taxonomy.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SubCategory:
    id: str
    name: str
    apple_music_id: str


@dataclass(frozen=True)
class GenreCategory:
    id: str
    name: str
    apple_music_id: str
    subcategories: tuple[SubCategory, ...] = field(default_factory=tuple)

    def matches(self, genre_name: str) -> bool:
        """True when a catalog genre name belongs to this category or one of its subcategories."""
        lowered = (genre_name or "").casefold()
        if not lowered:
            return False
        if self.name.casefold() in lowered:
            return True
        return any(sub.name.casefold() in lowered for sub in self.subcategories)


def _sub(sub_id: str, name: str, apple_music_id: str) -> SubCategory:
    return SubCategory(id=sub_id, name=name, apple_music_id=apple_music_id)


ROCK = GenreCategory(
    id="rock",
    name="Rock",
    apple_music_id="21",
    subcategories=(
        _sub("rock-alternative", "Alternative", "20"),
        _sub("rock-classic", "Classic Rock", "1146"),
        _sub("rock-indie", "Indie Rock", "1151"),
        _sub("rock-punk", "Punk", "1154"),
        _sub("rock-metal", "Metal", "1153"),
        _sub("rock-hard", "Hard Rock", "1152"),
        _sub("rock-prog", "Prog Rock", "1166"),
        _sub("rock-psychedelic", "Psychedelic", "1167"),
    ),
)

POP = GenreCategory(
    id="pop",
    name="Pop",
    apple_music_id="14",
    subcategories=(
        _sub("pop-adult-contemporary", "Adult Contemporary", "1126"),
        _sub("pop-indie", "Indie Pop", "1136"),
        _sub("pop-kpop", "K-Pop", "1243"),
        _sub("pop-jpop", "J-Pop", "1064"),
        _sub("pop-singer-songwriter", "Singer/Songwriter", "22"),
        _sub("pop-synth", "Synth Pop", "1165"),
    ),
)

HIP_HOP = GenreCategory(
    id="hiphop",
    name="Hip-Hop/Rap",
    apple_music_id="18",
    subcategories=(
        _sub("hiphop-east-coast", "East Coast", "1068"),
        _sub("hiphop-west-coast", "West Coast", "1069"),
        _sub("hiphop-trap", "Trap", "1207"),
        _sub("hiphop-conscious", "Conscious", "1066"),
        _sub("hiphop-underground", "Underground", "1072"),
        _sub("hiphop-dirty-south", "Dirty South", "1067"),
    ),
)

ELECTRONIC = GenreCategory(
    id="electronic",
    name="Electronic",
    apple_music_id="7",
    subcategories=(
        _sub("electronic-house", "House", "1048"),
        _sub("electronic-techno", "Techno", "1056"),
        _sub("electronic-ambient", "Ambient", "1046"),
        _sub("electronic-drum-and-bass", "Drum & Bass", "1047"),
        _sub("electronic-dubstep", "Dubstep", "1208"),
        _sub("electronic-idm", "IDM", "1049"),
        _sub("electronic-trance", "Trance", "1057"),
        _sub("electronic-downtempo", "Downtempo", "1058"),
    ),
)

R_AND_B = GenreCategory(
    id="rnb",
    name="R&B/Soul",
    apple_music_id="15",
    subcategories=(
        _sub("rnb-contemporary", "Contemporary R&B", "1141"),
        _sub("rnb-classic-soul", "Classic Soul", "1143"),
        _sub("rnb-funk", "Funk", "1144"),
        _sub("rnb-neo-soul", "Neo-Soul", "1145"),
    ),
)

JAZZ = GenreCategory(
    id="jazz",
    name="Jazz",
    apple_music_id="11",
    subcategories=(
        _sub("jazz-bebop", "Bebop", "1106"),
        _sub("jazz-contemporary", "Contemporary Jazz", "1107"),
        _sub("jazz-fusion", "Fusion", "1108"),
        _sub("jazz-latin", "Latin Jazz", "1109"),
        _sub("jazz-smooth", "Smooth Jazz", "1110"),
    ),
)

COUNTRY = GenreCategory(
    id="country",
    name="Country",
    apple_music_id="6",
    subcategories=(
        _sub("country-alternative", "Alternative Country", "1034"),
        _sub("country-americana", "Americana", "1193"),
        _sub("country-classic", "Classic Country", "1035"),
        _sub("country-contemporary", "Contemporary Country", "1036"),
    ),
)

CLASSICAL = GenreCategory(
    id="classical",
    name="Classical",
    apple_music_id="5",
    subcategories=(
        _sub("classical-baroque", "Baroque", "1021"),
        _sub("classical-chamber", "Chamber Music", "1022"),
        _sub("classical-modern", "Modern", "1025"),
        _sub("classical-opera", "Opera", "1026"),
        _sub("classical-orchestral", "Orchestral", "1027"),
    ),
)

LATIN = GenreCategory(
    id="latin",
    name="Latin",
    apple_music_id="12",
    subcategories=(
        _sub("latin-reggaeton", "Reggaeton", "1118"),
        _sub("latin-salsa", "Salsa & Tropical", "1119"),
        _sub("latin-rock", "Latin Rock", "1116"),
        _sub("latin-pop", "Latin Pop", "1115"),
    ),
)

ALL_GENRES: tuple[GenreCategory, ...] = (
    ROCK,
    POP,
    HIP_HOP,
    ELECTRONIC,
    R_AND_B,
    JAZZ,
    COUNTRY,
    CLASSICAL,
    LATIN,
)


def category(genre_id: str) -> GenreCategory | None:
    return next((genre for genre in ALL_GENRES if genre.id == genre_id), None)


def subcategory(sub_id: str) -> SubCategory | None:
    for genre in ALL_GENRES:
        for sub in genre.subcategories:
            if sub.id == sub_id:
                return sub
    return None


def apple_music_id(any_id: str) -> str | None:
    """Resolve a category or subcategory stable ID to its Apple Music genre ID."""
    found = category(any_id)
    if found is not None:
        return found.apple_music_id
    sub = subcategory(any_id)
    return sub.apple_music_id if sub is not None else None
