"""
Model package initializer.

This module exists to make sure SQLAlchemy's registry is populated in any runtime
that uses the ORM outside of `techstock/main.py` (scripts, one-off imports).
"""

# Import side-effects: register ORM mappings.
from techstock.models import inventory  # noqa: F401
