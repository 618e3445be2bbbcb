"""Dead Simple Tasks: a minimal personal task list over a hosted backend."""

__version__ = "0.3.0"
