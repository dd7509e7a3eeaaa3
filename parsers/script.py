"""Scene parser for annotated screenplay text.

Scenes start at bold numbered headings and carry bracketed visual
annotations::

    **1. 外景 - 未来城市 - 白天**

    [画面：高耸入云的金属巨塔……]
    [特写：迈克的眼睛……]

Each scene with at least one annotation becomes a ``SceneDescriptor`` whose
description joins the annotation texts in source order.
"""

import re
from collections.abc import Iterable
from re import Pattern

from core.models import SceneDescriptor

# ---------------------------------------------------------------------------
# Annotation vocabulary: every tag extracts its text and appends it
# ---------------------------------------------------------------------------

DESCRIPTION_TAGS: tuple[str, ...] = (
    "画面",  # shot / visual
    "特写",  # close-up
    "蒙太奇",  # montage
)

# **  1. Heading text  **  (heading text never spans lines)
HEADING_RE = re.compile(r"\*\*\s*(\d+\..*?)\s*\*\*")

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


def _annotation_pattern(tags: Iterable[str]) -> Pattern[str]:
    alternation = "|".join(re.escape(tag) for tag in tags)
    # Standard or fullwidth colon; content runs to the first closing bracket.
    return re.compile(rf"\[(?:{alternation})[：:](.*?)\]", re.DOTALL)


class ScriptParser:
    """Extract ordered ``(label, description)`` scenes from screenplay text.

    The parser is stateless after construction; ``parse`` may be called
    repeatedly and from any thread or task.
    """

    def __init__(self, tags: Iterable[str] = DESCRIPTION_TAGS) -> None:
        tags = tuple(tags)
        if not tags:
            raise ValueError("At least one description tag is required")
        self.tags = tags
        self._annotation_re = _annotation_pattern(tags)

    def parse(self, script: str) -> list[SceneDescriptor]:
        """Parse *script* and return the scenes that carry descriptions.

        Text before the first heading is ignored, and headings without any
        recognised annotation are dropped.  Never raises; returns an empty
        list when nothing matches.
        """
        if not script:
            return []

        headings = list(HEADING_RE.finditer(script))
        scenes: list[SceneDescriptor] = []

        for i, heading in enumerate(headings):
            body_end = headings[i + 1].start() if i + 1 < len(headings) else len(script)
            body = script[heading.end() : body_end]

            description = self.extract_description(body)
            if description:
                scenes.append(
                    SceneDescriptor(label=heading.group(1).strip(), description=description)
                )

        return scenes

    def extract_description(self, body: str) -> str:
        """Join all annotation texts in *body*; empty string if there are none."""
        fragments = [
            _LINE_BREAK_RE.sub(" ", match.group(1).strip())
            for match in self._annotation_re.finditer(body)
        ]
        return " ".join(fragment for fragment in fragments if fragment)


_default_parser = ScriptParser()


def parse_script(script: str) -> list[SceneDescriptor]:
    """Parse *script* with the default tag vocabulary."""
    return _default_parser.parse(script)
