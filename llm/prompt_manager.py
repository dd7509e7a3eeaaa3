"""Centralized prompt management loaded from YAML configuration.

All generation prompts are defined in ``config/prompts/prompts.yaml`` and
accessed via the cached ``PromptManager``, so prompt wording can change
without touching Python code.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_DEFAULT_YAML_PATH = Path(__file__).resolve().parent.parent / "config" / "prompts" / "prompts.yaml"


class PromptManager:
    """Load and format prompts from a YAML configuration file.

    Usage::

        pm = get_prompt_manager()
        system, user = pm.get("storyboard", "enhance", description="高耸入云的金属巨塔")
    """

    def __init__(self, yaml_path: Path | str | None = None) -> None:
        self.path = Path(yaml_path) if yaml_path else _DEFAULT_YAML_PATH
        if not self.path.exists():
            raise FileNotFoundError(f"Prompt YAML not found: {self.path}")

        loaded = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Prompt YAML must contain a mapping: {self.path}")

        self._prompts: dict[str, Any] = loaded
        self._version = str(loaded.get("version", "unknown"))
        logger.info(f"Loaded prompts v{self._version} from {self.path}")

    @property
    def version(self) -> str:
        return self._version

    def get(self, section: str, name: str, **kwargs: Any) -> tuple[str, str]:
        """Return ``(system_prompt, user_prompt)`` with variables substituted.

        Substituted values are inserted verbatim, so braces inside a scene
        description are never treated as template fields.

        Raises ``KeyError`` if section/name does not exist or a template
        variable is missing from *kwargs*.
        """
        try:
            entry = self._prompts[section][name]
        except (KeyError, TypeError):
            raise KeyError(f"Prompt not found: {section}.{name}")

        try:
            user = entry["user"].strip().format(**kwargs)
        except KeyError as e:
            raise KeyError(f"Missing variable {e} for prompt {section}.{name}")

        return entry["system"].strip(), user


@lru_cache
def get_prompt_manager() -> PromptManager:
    """Return the process-wide ``PromptManager`` for the bundled prompts."""
    return PromptManager()
