"""Canonical Bible book names and the aliases accepted in notes."""

import re
from typing import Dict, List, Optional, Tuple

# (canonical name, aliases). Matching ignores case, repeated whitespace and a
# trailing period on abbreviations.
BIBLE_BOOKS: List[Tuple[str, List[str]]] = [
    ("Genesis", ["gen", "ge", "gn"]),
    ("Exodus", ["exo", "exod", "ex"]),
    ("Leviticus", ["lev", "lv"]),
    ("Numbers", ["num", "nm"]),
    ("Deuteronomy", ["deut", "dt"]),
    ("Joshua", ["josh"]),
    ("Judges", ["judg", "jdg"]),
    ("Ruth", ["rth"]),
    ("1 Samuel", ["1 sam", "1 sa", "first samuel"]),
    ("2 Samuel", ["2 sam", "2 sa", "second samuel"]),
    ("1 Kings", ["1 kgs", "1 ki", "first kings"]),
    ("2 Kings", ["2 kgs", "2 ki", "second kings"]),
    ("1 Chronicles", ["1 chron", "1 chr", "first chronicles"]),
    ("2 Chronicles", ["2 chron", "2 chr", "second chronicles"]),
    ("Ezra", ["ezr"]),
    ("Nehemiah", ["neh"]),
    ("Esther", ["esth", "est"]),
    ("Job", []),
    ("Psalms", ["psalm", "ps", "psa", "pss"]),
    ("Proverbs", ["prov", "proverb", "prv"]),
    ("Ecclesiastes", ["eccl", "ecc", "qoh"]),
    ("Song of Songs", ["song of solomon", "sos", "song"]),
    ("Isaiah", ["isa"]),
    ("Jeremiah", ["jer"]),
    ("Lamentations", ["lam"]),
    ("Ezekiel", ["ezek", "ezk"]),
    ("Daniel", ["dan", "dn"]),
    ("Hosea", ["hos"]),
    ("Joel", []),
    ("Amos", []),
    ("Obadiah", ["obad", "ob"]),
    ("Jonah", ["jon"]),
    ("Micah", ["mic"]),
    ("Nahum", ["nah"]),
    ("Habakkuk", ["hab"]),
    ("Zephaniah", ["zeph"]),
    ("Haggai", ["hag"]),
    ("Zechariah", ["zech"]),
    ("Malachi", ["mal"]),
    ("Matthew", ["matt", "mt"]),
    ("Mark", ["mk", "mr"]),
    ("Luke", ["lk"]),
    ("John", ["jn", "jhn"]),
    ("Acts", ["acts of the apostles"]),
    ("Romans", ["rom"]),
    ("1 Corinthians", ["1 cor", "first corinthians"]),
    ("2 Corinthians", ["2 cor", "second corinthians"]),
    ("Galatians", ["gal"]),
    ("Ephesians", ["eph"]),
    ("Philippians", ["phil", "php"]),
    ("Colossians", ["col"]),
    ("1 Thessalonians", ["1 thess", "1 th", "first thessalonians"]),
    ("2 Thessalonians", ["2 thess", "2 th", "second thessalonians"]),
    ("1 Timothy", ["1 tim", "first timothy"]),
    ("2 Timothy", ["2 tim", "second timothy"]),
    ("Titus", ["tit"]),
    ("Philemon", ["phlm", "philem"]),
    ("Hebrews", ["heb"]),
    ("James", ["jas"]),
    ("1 Peter", ["1 pet", "1 pt", "first peter"]),
    ("2 Peter", ["2 pet", "2 pt", "second peter"]),
    ("1 John", ["1 jn", "first john"]),
    ("2 John", ["2 jn", "second john"]),
    ("3 John", ["3 jn", "third john"]),
    ("Jude", []),
    ("Revelation", ["rev", "revelations", "apocalypse"]),
]


def _lookup_form(name: str) -> str:
    """Fold a book name to the form used as a lookup key ("1 Cor." -> "1cor")."""
    return re.sub(r"\s+", "", name.strip().rstrip(".")).lower()


_ALIASES: Dict[str, str] = {}
for _canonical, _aliases in BIBLE_BOOKS:
    for _name in [_canonical, *_aliases]:
        _ALIASES[_lookup_form(_name)] = _canonical


def canonical_book(name: str) -> Optional[str]:
    """Resolve a book name or abbreviation to its canonical spelling.

    Args:
        name: Book name as written (e.g. "1 cor", "Ps.", "song of solomon")

    Returns:
        Canonical name, or None when the name is not a known book
    """
    if not name:
        return None
    return _ALIASES.get(_lookup_form(name))


def _alias_pattern(name: str) -> str:
    # "1 cor" -> r"1\s*cor" ; "song of solomon" -> r"song\s+of\s+solomon"
    parts = name.split()
    if len(parts) > 1 and parts[0].isdigit():
        head, rest = parts[0], parts[1:]
        return re.escape(head) + r"\s*" + r"\s+".join(re.escape(p) for p in rest)
    return r"\s+".join(re.escape(p) for p in parts)


def book_name_pattern() -> str:
    """Regex alternation matching every canonical name and alias.

    Longer names come first so "1 John" wins over "John" and
    "Song of Solomon" over "Song".
    """
    names = {name.lower() for canonical, aliases in BIBLE_BOOKS for name in [canonical, *aliases]}
    ordered = sorted(names, key=len, reverse=True)
    return "|".join(_alias_pattern(name) for name in ordered)


def starts_numbered_book(number: str, word: str) -> bool:
    """Check whether "<number> <word>" names a numbered book.

    Used to tell "Hebrews 13:2, 1 Peter 4:9" apart from a trailing verse 1.
    """
    return _lookup_form(f"{number} {word}") in _ALIASES
