"""ScriptGenie — script to narrated, illustrated segments."""

__version__ = "1.0.0"
