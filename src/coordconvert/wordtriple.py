"""Word-triple (what3words-style) shape parsing."""

import re

from coordconvert.exceptions import GrammarMismatch
from coordconvert.models import WordTriple

MAX_WORD_LENGTH = 40

# Alphanumeric in any script; underscores are not word characters here.
_TOKEN = r"[^\W_]+"
_TRIPLE_RE = re.compile(rf"^(?:///)?({_TOKEN})\.({_TOKEN})\.({_TOKEN})$")


def parse(text: str) -> WordTriple:
    """
    Validate the shape of a word triple and return it lower-cased.

    Never resolves a position; that is the geocoder's job.
    Raises GrammarMismatch on any shape problem.
    """
    m = _TRIPLE_RE.match(text.strip())
    if m is None:
        raise GrammarMismatch(
            text, "what3words", "expected three dot-separated words, e.g. filled.count.soap"
        )
    words = tuple(word.lower() for word in m.groups())
    for word in words:
        if len(word) > MAX_WORD_LENGTH:
            raise GrammarMismatch(
                text, "what3words", f"'{word[:12]}…' is longer than {MAX_WORD_LENGTH} characters"
            )
    return WordTriple(words=words)


def normalise(text: str) -> str:
    """Canonical 'a.b.c' form, e.g. '///Index.Home.Raft' -> 'index.home.raft'."""
    return parse(text).text
