"""Filesystem locations for stored documents."""

import os
from pathlib import Path

# DATA_DIR is set in containers; local runs use backend/data
DATA_DIR = Path(os.environ.get("DATA_DIR") or Path(__file__).resolve().parents[3] / "data")

SRF_DOCUMENTS_DIR = DATA_DIR / "srf_documents"
