import sys
from pathlib import Path

# Mimic the container layout: the repo root is the import root, so
# `core`, `providers` and `reports` import as top-level packages.
REPO_ROOT = Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))
