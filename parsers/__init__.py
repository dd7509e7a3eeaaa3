"""Screenplay parser for annotated scene scripts."""

from parsers.script import DESCRIPTION_TAGS, ScriptParser, parse_script

__all__ = ["DESCRIPTION_TAGS", "ScriptParser", "parse_script"]
