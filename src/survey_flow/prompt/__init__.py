"""Prompt rendering for the external text-generation services.

Provides ``PromptManager``, a Jinja2-based template engine that renders
flow steps and judgment requests into prompt strings with JSON response
format instructions.
"""

from survey_flow.prompt.manager import PromptManager

__all__ = ["PromptManager"]
