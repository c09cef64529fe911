"""Model invocation with tool round-trips."""

from .prompts import DEFAULT_SYSTEM_PROMPT, render_system_prompt

__all__ = ["DEFAULT_SYSTEM_PROMPT", "render_system_prompt"]
