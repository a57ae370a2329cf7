"""Screenshot renamer: AI-assisted renaming and sorting of screenshots."""

__version__ = "0.1.0"
