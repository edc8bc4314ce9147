"""Mixed multi-operation templates.

Recognized before generic splitting so an object phrase that itself contains
"and" ("add sausage and peppers and change background to forest") is not cut
in the wrong place. A template only fires if every sub-instruction it
produces classifies to the operation type it expects.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable

from app.engine.classifier import classify

logger = logging.getLogger(__name__)

_ADD = r"(add|put|place|give)"


@dataclass(frozen=True)
class MixedTemplate:
    id: str
    pattern: re.Pattern[str]
    build: Callable[[re.Match[str]], list[str]]
    expected: tuple[str, ...]
    description: str = ""


TEMPLATES: list[MixedTemplate] = [
    MixedTemplate(
        id="MX.01",
        pattern=re.compile(
            r"^(add|put)\s+(.+?),\s*(change|set|make)\s+(?:the\s+)?background\s+(?:to\s+)?(.+?),?\s*and\s+"
            r"(make|turn)\s+((?:the\s+)?.+?)\s+(\w+)$"
        ),
        build=lambda m: [
            f"{m.group(1)} {m.group(2)}",
            f"{m.group(3)} background to {m.group(4)}",
            f"{m.group(5)} {m.group(6)} {m.group(7)}",
        ],
        expected=("object_addition", "background_edit", "object_modification"),
        description="add X, change background to Y, and make Z W",
    ),
    MixedTemplate(
        id="MX.02",
        pattern=re.compile(
            rf"^{_ADD}\s+(.+?)\s+and\s+(change|make|set)\s+(?:the\s+)?background\s+(?:to\s+)?(.+)$"
        ),
        build=lambda m: [
            f"{m.group(1)} {m.group(2)}",
            f"{m.group(3)} background to {m.group(4)}",
        ],
        expected=("object_addition", "background_edit"),
        description="add X and change background to Y",
    ),
    MixedTemplate(
        id="MX.03",
        pattern=re.compile(
            rf"^(change|make|set)\s+(?:the\s+)?background\s+(?:to\s+)?(.+?)\s+and\s+{_ADD}\s+(.+)$"
        ),
        build=lambda m: [
            f"{m.group(1)} background to {m.group(2)}",
            f"{m.group(3)} {m.group(4)}",
        ],
        expected=("background_edit", "object_addition"),
        description="change background to Y and add X",
    ),
    MixedTemplate(
        id="MX.04",
        pattern=re.compile(
            rf"^{_ADD}\s+(.+?)\s+and\s+change\s+(?:the\s+)?color\s+of\s+(?:the\s+)?(.+?)\s+to\s+(\w+)$"
        ),
        build=lambda m: [
            f"{m.group(1)} {m.group(2)}",
            f"change the color of {m.group(3)} to {m.group(4)}",
        ],
        expected=("object_addition", "object_modification"),
        description="add X and change the color of Y to Z",
    ),
    MixedTemplate(
        id="MX.05",
        pattern=re.compile(rf"^{_ADD}\s+(.+?)\s+and\s+(make|turn)\s+((?:the\s+)?.+?)\s+(\w+)$"),
        build=lambda m: [
            f"{m.group(1)} {m.group(2)}",
            f"{m.group(3)} {m.group(4)} {m.group(5)}",
        ],
        expected=("object_addition", "object_modification"),
        description="add X and make Y Z",
    ),
]


def match_template(text: str) -> tuple[MixedTemplate, list[str]] | None:
    """First template whose parts all classify as expected, with those parts."""
    for template in TEMPLATES:
        m = template.pattern.match(text)
        if m is None:
            continue
        parts = [" ".join(p.split()) for p in template.build(m)]
        kinds = tuple(classify(p).type for p in parts)  # type: ignore[attr-defined]
        if kinds == template.expected:
            logger.debug("Template %s matched %r -> %s", template.id, text, parts)
            return template, parts
        logger.debug("Template %s matched %r but parts classified as %s", template.id, text, kinds)
    return None
