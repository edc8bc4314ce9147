"""Shared word tables for normalization, classification and prompt mutation.

Everything here is lower-case. Tables are plain tuples/dicts so rule modules
can build regex alternations from them with ``alternation()``.
"""

from __future__ import annotations

import re

from app.models.chain import DEFAULT_BACKGROUND  # noqa: F401

# Verbs that mark the start of an edit. Order matters only for readability.
ACTION_VERBS = (
    "add", "put", "place", "give", "change", "make", "turn", "set",
    "remove", "color", "paint", "dye", "replace", "swap", "switch",
    "equip", "outfit", "transform", "improve", "enhance",
)

# Single words that name an environment and so usually mean "background".
ENVIRONMENTS = (
    "forest", "snow", "snowfall", "rain", "city", "beach", "mountain",
    "mountains", "desert", "ocean", "sky", "cloud", "clouds", "sunset",
    "sunrise", "night", "day", "jungle", "space", "underwater", "galaxy",
    "park", "street", "countryside", "meadow",
)

# Longer descriptions used when a background is named by a bare environment word.
ENVIRONMENT_DESCRIPTIONS = {
    "forest": "dense green forest with tall trees",
    "snow": "snowy winter landscape",
    "snowfall": "gentle snowfall in a winter landscape",
    "rain": "rainy scene with falling rain",
    "city": "city skyline with tall buildings",
    "beach": "sunny beach with sand and ocean waves",
    "mountain": "mountain landscape with rocky peaks",
    "mountains": "mountain landscape with rocky peaks",
    "desert": "sandy desert with dunes",
    "ocean": "open ocean with rolling waves",
    "sky": "clear blue sky",
    "cloud": "soft white clouds",
    "clouds": "soft white clouds",
    "sunset": "warm orange sunset sky",
    "sunrise": "soft golden sunrise sky",
    "night": "night sky with stars",
    "day": "bright daytime sky",
    "jungle": "lush tropical jungle",
    "space": "outer space with stars and planets",
    "underwater": "underwater scene with coral and fish",
    "galaxy": "swirling galaxy of stars",
    "park": "green park with trees and grass",
    "street": "urban street scene",
    "countryside": "rolling countryside fields",
    "meadow": "flowering meadow",
}

# Words that turn a background edit into a removal.
BACKGROUND_REMOVAL_VALUES = (
    "transparent", "clear", "empty", "blank", "none", "nothing",
)

COLORS = (
    "red", "orange", "yellow", "green", "blue", "purple", "violet", "pink",
    "black", "white", "gray", "brown", "gold", "silver", "bronze", "cyan",
    "magenta", "teal", "navy", "maroon", "beige", "turquoise", "indigo",
    "crimson", "lime", "neon", "rainbow",
)

# Adjectival forms folded onto their base color.
COLOR_ADJECTIVES = {
    "golden": "gold",
    "silvery": "silver",
    "reddish": "red",
    "bluish": "blue",
    "greenish": "green",
    "yellowish": "yellow",
    "pinkish": "pink",
    "purplish": "purple",
    "grayish": "gray",
    "blackened": "black",
}

# Recognized object nouns; the earliest one mentioned in a phrase is its key.
KNOWN_OBJECTS = (
    "sunglasses", "glasses", "cigarette", "cigar", "pipe", "necklace",
    "chain", "earrings", "earring", "bracelet", "ring", "teeth", "tooth",
    "eyes", "eye", "nose", "mouth", "shirt", "jacket", "coat", "shoes",
    "boots", "hat", "cap", "crown", "helmet", "bandana", "scarf", "tie",
    "bow tie", "beard", "mustache", "hair", "wings", "horns", "halo",
    "snake", "flower", "rose", "guitar", "skateboard", "headphones",
    "mask", "skull",
)

# Canonical target names used when grouping operations for conflicts.
TARGET_SYNONYMS = {
    "glasses": "sunglasses",
    "shades": "sunglasses",
    "spectacles": "sunglasses",
    "cigarette": "cigar",
    "tooth": "teeth",
    "eye": "eyes",
    "earring": "earrings",
    "cap": "hat",
    "moustache": "mustache",
    "shoe": "shoes",
    "boot": "boots",
    "it": "main subject",
    "him": "main subject",
    "her": "main subject",
    "them": "main subject",
    "this": "main subject",
    "subject": "main subject",
    "character": "main subject",
}

# Parts that live "inside" a larger object record of the scene descriptor.
RELATED_PARTS = {
    "teeth": ("skull", "mouth", "jaw", "face", "head"),
    "eyes": ("skull", "face", "head"),
    "nose": ("skull", "face", "head"),
    "mouth": ("skull", "face", "head"),
    "hair": ("head", "face"),
    "beard": ("face", "head"),
    "mustache": ("face", "head"),
    "hat": ("head", "skull"),
    "jacket": ("body", "torso"),
    "shirt": ("body", "torso"),
}

PRONOUN_TARGETS = ("it", "him", "her", "them", "this", "the image", "the design")
MAIN_SUBJECT = "main subject"

# "sausage and peppers" must survive segmentation as one object phrase.
COMPOUND_PHRASES = (
    "sausage and peppers",
    "salt and pepper",
    "black and white",
    "rock and roll",
    "bread and butter",
    "fish and chips",
    "bow and arrow",
    "stars and stripes",
    "skull and crossbones",
    "sun and moon",
)

ARTICLES = ("a", "an", "the", "some", "his", "her", "its", "their", "my")

VAGUE_VALUES = (
    "better", "cooler", "nicer", "prettier", "different", "interesting",
    "good", "great", "awesome", "cool", "nice",
)


def alternation(words: tuple[str, ...] | list[str]) -> str:
    """Regex alternation of ``words``, longest first, each escaped."""
    ordered = sorted(words, key=len, reverse=True)
    return "(?:" + "|".join(re.escape(w) for w in ordered) + ")"


def strip_articles(phrase: str) -> str:
    words = phrase.strip().split()
    while len(words) > 1 and words[0] in ARTICLES:
        words = words[1:]
    return " ".join(words)


def normalize_color(word: str) -> str | None:
    """Return the base color for ``word`` or None if it is not a color."""
    w = word.strip().lower()
    if w in COLORS:
        return w
    if w == "grey":
        return "gray"
    return COLOR_ADJECTIVES.get(w)


def canonical_target(target: str) -> str:
    t = strip_articles(target.lower())
    if t in TARGET_SYNONYMS:
        return TARGET_SYNONYMS[t]
    if "background" in t:
        return "background"
    return t


def extract_object_key(phrase: str) -> str:
    """Object key for a phrase: first known object mentioned, else the last word."""
    low = phrase.lower()
    found = [
        (m.start(), obj)
        for obj in KNOWN_OBJECTS
        for m in [re.search(rf"\b{re.escape(obj)}\b", low)]
        if m
    ]
    if found:
        return min(found)[1]
    words = strip_articles(low).split()
    return words[-1] if words else low.strip()
