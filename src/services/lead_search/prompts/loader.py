"""Loads Markdown prompt templates with YAML front matter and renders them with Jinja2."""

import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import yaml
from jinja2 import BaseLoader, Environment, StrictUndefined

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).parent
_FRONTMATTER_RE = re.compile(r"\A---\s*\n(.*?)\n---\s*\n", re.DOTALL)

_environment = Environment(loader=BaseLoader(), undefined=StrictUndefined, trim_blocks=True, lstrip_blocks=True)


class PromptTemplate:
    def __init__(self, prompt_id: str, content: str, metadata: Dict[str, Any]):
        self.id = prompt_id
        self.content = content
        self.version = metadata.get("version", "v1")
        self.description = metadata.get("description", "")
        self.requires = metadata.get("requires", [])
        self._template = _environment.from_string(content)

    def render(self, **kwargs) -> str:
        return self._template.render(**kwargs)


def get_prompt_path(prompt_id: str) -> Path:
    return PROMPTS_DIR / f"{prompt_id}.md"


@lru_cache(maxsize=32)
def _load_prompt_file(prompt_id: str) -> PromptTemplate:
    path = get_prompt_path(prompt_id)
    if not path.exists():
        raise FileNotFoundError(f"Prompt file not found: {path}")

    content = path.read_text(encoding="utf-8")
    metadata, template_content = _parse_frontmatter(content, prompt_id)
    return PromptTemplate(prompt_id, template_content, metadata)


def _parse_frontmatter(content: str, prompt_id: str = "") -> tuple[Dict[str, Any], str]:
    match = _FRONTMATTER_RE.match(content)
    if match is None:
        return {}, content

    try:
        metadata = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as e:
        logger.warning(f"Ignoring malformed front matter in prompt '{prompt_id}': {e}")
        metadata = {}

    return metadata, content[match.end():].strip()


def load_prompt(prompt_id: str, **kwargs) -> str:
    template = _load_prompt_file(prompt_id)
    missing = [r for r in template.requires if r not in kwargs]
    if missing:
        raise KeyError(f"Prompt '{prompt_id}' missing required variables: {missing}")
    return template.render(**kwargs)


def reload_prompts() -> None:
    _load_prompt_file.cache_clear()
