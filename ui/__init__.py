"""View layer: turns display state into what the page shows.

The page template, static assets and icon tables live next to this
module so they are installed with the package.
"""

from pathlib import Path

PACKAGE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = PACKAGE_DIR / "templates"
STATIC_DIR = PACKAGE_DIR / "static"
MAPPINGS_DIR = PACKAGE_DIR / "mappings"
