"""Allow running the screenshot renamer with ``python -m``."""

from .main import run

if __name__ == "__main__":
    run()
