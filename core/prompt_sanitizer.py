"""Cleanup of text sent to and received from the generative service."""

import logging
import re
from re import Pattern

logger = logging.getLogger(__name__)


class PromptSanitizer:
    """Normalize scene descriptions and enhancer output before use as prompts."""

    # Phrases that try to override the enhancement instructions
    OVERRIDE_PATTERNS: list[Pattern[str]] = [
        re.compile(r"ignore\s+(previous|all|above|prior)\s+(instructions?|prompts?|rules?)", re.IGNORECASE),
        re.compile(r"disregard\s+(previous|all|above|prior)\s+(instructions?|prompts?|rules?)", re.IGNORECASE),
        re.compile(r"(you\s+are\s+now|now\s+you\s+are)\s+", re.IGNORECASE),
        re.compile(r"new\s+instructions?:", re.IGNORECASE),
        re.compile(r"忽略(之前|以上|所有)的?(指令|提示|规则)"),
    ]

    # Leading labels models like to put in front of the answer
    _LABEL_RE = re.compile(r"^(image\s+prompt|prompt|enhanced\s+prompt)\s*[:：]\s*", re.IGNORECASE)
    _FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")
    _QUOTE_PAIRS = {('"', '"'), ("'", "'"), ("“", "”"), ("「", "」")}

    @classmethod
    def warn_on_override_attempt(cls, text: str) -> bool:
        """Log a warning if *text* contains an instruction-override phrase.

        The text is not modified; flagged descriptions are still enhanced.
        Returns True when a phrase was found.
        """
        for pattern in cls.OVERRIDE_PATTERNS:
            if pattern.search(text):
                logger.warning(
                    f"Instruction override phrase in description: {pattern.pattern}",
                    extra={"text_preview": text[:100]},
                )
                return True
        return False

    @classmethod
    def sanitize(cls, text: str, max_length: int = 4000) -> str:
        """
        Collapse whitespace, drop control characters and cap length.

        Args:
            text: Description or prompt text
            max_length: Maximum allowed length

        Returns:
            Sanitized text
        """
        text = text.replace("\x00", "")
        text = re.sub(r"\s+", " ", text)
        text = "".join(char for char in text if char.isprintable())
        text = text.strip()

        if len(text) > max_length:
            logger.warning(f"Prompt truncated from {len(text)} to {max_length} characters")
            text = text[:max_length].rstrip()

        return text

    @classmethod
    def clean_enhanced_prompt(cls, text: str, max_length: int = 4000) -> str:
        """
        Strip code fences, ``Prompt:`` labels and wrapping quotes from
        enhancer output, then sanitize it.
        """
        text = cls._FENCE_RE.sub("", text.strip())
        text = cls._LABEL_RE.sub("", text.strip())
        text = text.strip()
        if len(text) >= 2 and (text[0], text[-1]) in cls._QUOTE_PAIRS:
            text = text[1:-1]
        return cls.sanitize(text, max_length)
