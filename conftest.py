"""
Repository-root pytest configuration.

Points Django at the project settings when pytest is started from the
repository root; fixtures live in app/conftest.py and the apps' tests/.
"""

import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
