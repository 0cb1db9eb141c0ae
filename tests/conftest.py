import sys
import os

import pytest

# Ensure the project root is in sys.path so `from app.main import app` works
# with relative imports inside the app package
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# Settings are read at import time and the key is required
os.environ.setdefault("GEMINI_API_KEY", "test-key")


@pytest.fixture(autouse=True)
def _release_sessions():
    yield
    from app.main import session_store

    session_store.close_all()
