"""Shared pytest configuration."""

import os
import tempfile

# Keep every test away from the real ~/ScreenShotManager, including module
# level constants computed at import time
os.environ.setdefault("SHOTKEEPER_DATA_ROOT", tempfile.mkdtemp(prefix="shotkeeper-tests-"))
