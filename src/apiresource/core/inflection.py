"""Small English inflection helpers for derived attribute names.

Only the rules needed to turn a collection relationship name into its
identifier accessor ("comments" -> "comment_ids") are covered.
"""

from __future__ import annotations

_IRREGULAR = {
    "people": "person",
    "children": "child",
    "men": "man",
    "women": "woman",
    "mice": "mouse",
    "geese": "goose",
    "feet": "foot",
    "teeth": "tooth",
}

# Words ending in "s" that are already singular
_UNCOUNTABLE = frozenset({"series", "species", "news", "status", "data", "metadata"})

_ES_ENDINGS = ("sses", "shes", "ches", "xes", "zzes")


def singularize(word: str) -> str:
    """Return the singular form of a snake_case plural noun.

    Only the last underscore-separated segment is inflected.

    Examples:
        comments -> comment
        categories -> category
        addresses -> address
        blog_posts -> blog_post
        people -> person
    """
    head, sep, last = word.rpartition("_")
    return f"{head}{sep}{_singularize_segment(last)}"


def _singularize_segment(word: str) -> str:
    lower = word.lower()
    if lower in _UNCOUNTABLE:
        return word
    if lower in _IRREGULAR:
        return _IRREGULAR[lower]
    if lower.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if lower.endswith(_ES_ENDINGS):
        return word[:-2]
    if lower.endswith("ss"):
        return word
    if lower.endswith("s") and len(word) > 1:
        return word[:-1]
    return word


def ids_accessor(relation_name: str, suffix: str = "_ids") -> str:
    """Name of the identifier-list accessor for a collection relationship."""
    return singularize(relation_name) + suffix
