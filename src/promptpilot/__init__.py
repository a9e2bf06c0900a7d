"""
PromptPilot: prompt version control with local-first storage

Keeps prompt groups and their versions in a local cache, enforces the
draft/current/production lifecycle, and reconciles the cache with a remote
store in the background.
"""

__version__ = "0.1.0"
__author__ = "PromptPilot Team"
__description__ = "Prompt version control and synchronization service"
