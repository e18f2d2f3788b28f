"""Tiny English inflection helpers for association names."""

_UNCOUNTABLE = {"data", "information", "metadata", "news", "series", "species"}
_SINGULAR_ENDINGS = ("ss", "us", "is")


def singularize(word: str) -> str:
    """
    Best-effort singular form of a snake_case association name.

    Only the last segment is inflected: ``sub_tasks`` -> ``sub_task``.
    """
    head, sep, last = word.rpartition("_")
    lowered = last.lower()
    if lowered in _UNCOUNTABLE or lowered.endswith(_SINGULAR_ENDINGS):
        return word
    if lowered.endswith("ies") and len(last) > 3:
        last = last[:-3] + "y"
    elif lowered.endswith(("ches", "shes", "xes", "sses", "zes")):
        last = last[:-2]
    elif lowered.endswith("s"):
        last = last[:-1]
    return f"{head}{sep}{last}"


def is_plural(word: str) -> bool:
    """True when ``word`` looks like a plural noun (``tasks``, ``categories``)."""
    last = word.rpartition("_")[2].lower()
    if last in _UNCOUNTABLE:
        return True
    return singularize(word) != word
