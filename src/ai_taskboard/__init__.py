"""AI-assisted task board: local persistence plus LLM sub-task breakdown."""

__version__ = "0.1.0"
