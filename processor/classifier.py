"""Dance style categorization."""
from typing import FrozenSet, Iterable, Mapping, Optional, Tuple

UNCATEGORIZED = 'Uncategorized'

STYLE_KEYWORDS: Mapping[str, Tuple[str, ...]] = {
    'Salsa': ('salsa',),
    'Bachata': ('bachata',),
    'Zouk': ('zouk',),
    'Kizomba': ('kizomba',),
    'West Coast Swing': ('west coast swing', 'wcs'),
    'Fusion': ('fusion',),
    'Ecstatic': ('ecstatic',),
    'Contact Improv': ('contact improv',),
}


def classify(title: str,
             keywords: Mapping[str, Tuple[str, ...]] = STYLE_KEYWORDS) -> FrozenSet[str]:
    """
    Infer dance styles from an event title.

    Args:
        title: Event title
        keywords: Mapping of style label to lowercase keywords

    Returns:
        Set of matched style labels, or {"Uncategorized"} if none match
    """
    lowered = (title or '').lower()
    labels = frozenset(
        label for label, words in keywords.items()
        if any(word in lowered for word in words)
    )
    return labels or frozenset({UNCATEGORIZED})


def resolve_categories(title: str, styles: Optional[Iterable[str]] = None,
                       keywords: Mapping[str, Tuple[str, ...]] = STYLE_KEYWORDS) -> FrozenSet[str]:
    """Use explicit styles when the source provides them, else infer from the title."""
    if styles is None:
        return classify(title, keywords)

    labels = frozenset(s.strip() for s in styles if s and s.strip())
    return labels or frozenset({UNCATEGORIZED})
