"""Phonetic keys used by the phonetic match strategy."""

from collections.abc import Callable


PhoneticKey = Callable[[str], str]

# Soundex digit per letter, a..z; "0" marks vowels and y, "." marks h and w
_SOUNDEX_CODES = dict(zip("abcdefghijklmnopqrstuvwxyz", "0123012.02245501262301.202", strict=True))
_SOUNDEX_LENGTH = 4


def soundex(text: str) -> str:
    """American Soundex key of a string: first letter plus three consonant digits.

    Non-letters are ignored, so multi-word values produce a single key. Returns an
    empty string when the input has no ASCII letters.
    """
    letters = [c for c in text.lower() if c in _SOUNDEX_CODES]
    if not letters:
        return ""

    first = letters[0]
    key = first.upper()
    last_code = _SOUNDEX_CODES[first]

    for char in letters[1:]:
        code = _SOUNDEX_CODES[char]
        if code == ".":
            # h and w do not separate letters with the same code
            continue
        if code == "0":
            last_code = code
            continue
        if code != last_code:
            key += code
            if len(key) == _SOUNDEX_LENGTH:
                break
        last_code = code

    return key.ljust(_SOUNDEX_LENGTH, "0")
