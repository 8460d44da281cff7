"""
Built-in smart folder kinds.

The five built-in folders are a closed enum; each member carries its
keyword table, regex patterns, icon and minimum-match threshold.
"""

import uuid
from enum import Enum

from shotkeeper.folders.models import FolderDefinition

_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Recipes": (
        "recipe",
        "ingredients",
        "tablespoon",
        "teaspoon",
        "tbsp",
        "tsp",
        "preheat",
        "prep time",
        "cook time",
        "servings",
        "bake at",
        "nutrition facts",
        "calories per",
        "whisk",
        "simmer",
        "sauté",
        "marinate",
        "knead",
        "fold in",
    ),
    "Prices": (
        "$",
        "USD",
        "subtotal",
        "tax",
        "discount",
        "€",
        "£",
        "¥",
        "amount due",
        "balance",
        "invoice",
        "receipt",
        "order total",
    ),
    "Addresses": (
        "street",
        "avenue",
        "blvd",
        "boulevard",
        "lane",
        "drive",
        "court",
        "suite",
        "apt",
        "apartment",
        "po box",
    ),
    "URLs": ("http://", "https://", "www."),
    "Phone Numbers": ("tel:", "phone:", "call us", "contact us"),
}

_PATTERNS: dict[str, tuple[str, ...]] = {
    "Recipes": (
        r"\d+\s*(cup|cups|tbsp|tsp|tablespoon|teaspoon|oz|ounce|lb|pound|g|gram|ml|liter)s?",
        r"preheat.*\d+.*degrees",
        r"bake.*\d+.*minutes",
    ),
    "Prices": (
        r"\$\d+\.?\d*",
        r"\d+\.\d{2}\s*USD",
        r"€\d+\.?\d*",
        r"£\d+\.?\d*",
        r"total:?\s*\$?\d+",
    ),
    "Addresses": (
        r"\d+\s+[A-Za-z]+\s+(street|st|avenue|ave|boulevard|blvd|road|rd|drive|dr|lane|ln|court|ct)",
        r"\d{5}(-\d{4})?",
        r"[A-Za-z]+,\s*[A-Z]{2}\s+\d{5}",
    ),
    "URLs": (
        r"https?://[\w\-._~:/?#\[\]@!$&'()*+,;=%]+",
        r"www\.[\w\-._~:/?#\[\]@!$&'()*+,;=%]+",
        r"[\w\-]+\.(com|org|net|io|co|app|dev|edu|gov)",
    ),
    "Phone Numbers": (
        r"\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}",
        r"\+?1?[-.\s]?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}",
        r"\d{3}[-.\s]\d{4}",
    ),
}

_ICONS: dict[str, str] = {
    "Recipes": "fork.knife",
    "Prices": "dollarsign.circle",
    "Addresses": "mappin.and.ellipse",
    "URLs": "link",
    "Phone Numbers": "phone",
}

_MINIMUM_MATCHES: dict[str, int] = {
    "Recipes": 4,
    "Prices": 2,
    "Addresses": 3,
    "URLs": 1,
    "Phone Numbers": 1,
}


class FolderKind(str, Enum):
    """The built-in smart folders, in display order."""

    RECIPES = "Recipes"
    PRICES = "Prices"
    ADDRESSES = "Addresses"
    URLS = "URLs"
    PHONE_NUMBERS = "Phone Numbers"

    @property
    def keywords(self) -> tuple[str, ...]:
        return _KEYWORDS[self.value]

    @property
    def patterns(self) -> tuple[str, ...]:
        return _PATTERNS[self.value]

    @property
    def icon_name(self) -> str:
        return _ICONS[self.value]

    @property
    def minimum_matches(self) -> int:
        return _MINIMUM_MATCHES[self.value]

    def definition(self) -> FolderDefinition:
        """Build a fresh definition for this kind (new id on every call)."""
        return FolderDefinition(
            id=uuid.uuid4(),
            name=self.value,
            icon_name=self.icon_name,
            keywords=self.keywords,
            patterns=self.patterns,
            minimum_matches=self.minimum_matches,
            built_in=True,
        )

    @classmethod
    def from_name(cls, name: str) -> "FolderKind":
        """
        Look up a kind by display name or member name, case-insensitively.

        Raises:
            ValueError: If no built-in folder has that name
        """
        normalized = name.strip().lower()
        for kind in cls:
            if normalized in (kind.value.lower(), kind.name.lower()):
                return kind
        raise ValueError(f"Unknown built-in folder: {name!r}")


def built_in_definitions() -> list[FolderDefinition]:
    """Fresh definitions for all built-in folders, in declaration order."""
    return [kind.definition() for kind in FolderKind]


# Keyword-only folders seeded into a new store. These are editable records,
# separate from the built-in tables above.
DEFAULT_CUSTOM_FOLDERS: tuple[tuple[str, tuple[str, ...], str], ...] = (
    (
        "Recipes",
        ("recipe", "ingredients", "cups", "tablespoons", "teaspoons", "bake", "cook",
         "minutes", "oven", "mix", "stir"),
        "fork.knife",
    ),
    (
        "Prices",
        ("$", "USD", "price", "cost", "total", "subtotal", "tax", "discount", "sale", "€", "£"),
        "dollarsign.circle",
    ),
    (
        "Addresses",
        ("street", "ave", "avenue", "blvd", "boulevard", "road", "rd", "lane", "ln", "drive",
         "dr", "court", "ct", "zip", "city", "state"),
        "mappin.and.ellipse",
    ),
    (
        "URLs",
        ("http", "https", "www", ".com", ".org", ".net", ".io", ".co", "://"),
        "link",
    ),
    (
        "Phone Numbers",
        ("phone", "call", "tel", "mobile", "cell", "(", ")", "-"),
        "phone",
    ),
)
