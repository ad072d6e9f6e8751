"""mdbuild - Markdown static-site builder.

Renders markdown documents through a Jinja2 template, copies static assets and
optionally watches the project with live reload.
"""

__version__ = "0.1.0"

# Configure logging for library use
import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

# Re-export main CLI entry point
from .cli import main

__all__ = ["main"]
