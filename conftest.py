import os
import sys

import pytest

# Make the backend packages importable when pytest runs from the repo root
BACKEND_DIR = os.path.join(os.path.dirname(__file__), 'backend')
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)


@pytest.fixture
def upload_dir(settings, tmp_path):
    """Point image storage at a throwaway directory."""
    path = tmp_path / 'uploads'
    settings.UPLOAD_DIR = str(path)
    settings.UPLOAD_URL = '/files/'
    return path
