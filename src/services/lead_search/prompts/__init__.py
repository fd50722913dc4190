"""Prompt templates for lead search and outreach."""

from services.lead_search.prompts.loader import get_prompt_path, load_prompt, reload_prompts

__all__ = ["load_prompt", "get_prompt_path", "reload_prompts"]
