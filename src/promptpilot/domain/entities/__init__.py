"""
Domain entities package.
"""

from .prompt_group import PromptGroup
from .prompt_version import PromptVersion

__all__ = [
    "PromptGroup",
    "PromptVersion",
]
