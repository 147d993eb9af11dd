"""
Theme classification for customer review text.

Keyword patterns are tested in a fixed order and are not mutually
exclusive: one review can land in several themes. Text that matches
nothing is tagged general_experience.
"""

import re
from typing import List, Tuple

from .models import Theme

# Order matters: it is the order themes are reported in.
THEME_PATTERNS: List[Tuple[Theme, re.Pattern]] = [
    (Theme.TASTE_QUALITY, re.compile(r"taste|flavor|gross|delicious|yummy|awful|good|bad", re.IGNORECASE)),
    (Theme.PRICE_VALUE, re.compile(r"price|cost|expensive|cheap|worth|value|money", re.IGNORECASE)),
    (Theme.EFFECTIVENESS, re.compile(r"work|result|effect|effective|useless|help|improve|better|worse", re.IGNORECASE)),
    (Theme.BUILD_QUALITY, re.compile(r"quality|build|durable|cheaply|sturdy|fragile|well-made|poorly-made", re.IGNORECASE)),
    (Theme.CUSTOMER_SERVICE, re.compile(r"service|support|customer|help|response|reply|company|seller", re.IGNORECASE)),
    (Theme.SHIPPING_DELIVERY, re.compile(r"shipping|delivery|arrive|package|box|damaged|fast|slow", re.IGNORECASE)),
    (Theme.EASE_OF_USE, re.compile(r"easy|difficult|hard|simple|complicated|use|operate|setup", re.IGNORECASE)),
    (Theme.SIZE_FIT, re.compile(r"size|fit|large|small|big|tight|loose|comfortable|uncomfortable", re.IGNORECASE)),
    (Theme.BATTERY_LIFE, re.compile(r"battery|charge|last|long|short|power|dead", re.IGNORECASE)),
    (Theme.APPEARANCE, re.compile(r"look|appearance|color|design|beautiful|ugly|attractive|stylish", re.IGNORECASE)),
    (Theme.SMELL_AROMA, re.compile(r"smell|odor|scent|aroma|fragrance|stink|fresh|bad smell", re.IGNORECASE)),
]


def classify_themes(text: str) -> List[Theme]:
    """
    Classify review text into themes.

    Args:
        text: Review content (any case)

    Returns:
        Matching themes in taxonomy order; [Theme.GENERAL_EXPERIENCE]
        when nothing matches. Never empty.
    """
    lowered = (text or "").lower()
    themes = [theme for theme, pattern in THEME_PATTERNS if pattern.search(lowered)]
    return themes or [Theme.GENERAL_EXPERIENCE]
