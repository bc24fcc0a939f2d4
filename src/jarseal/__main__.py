"""
Entry point for `python -m jarseal`.

Usage:
    python -m jarseal sign app.jar lib/*.jar
    python -m jarseal check app.jar
    python -m jarseal config show
"""

from .ui.cli import main

main()
