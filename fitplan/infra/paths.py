from pathlib import Path

from fitplan.utilities.config import DATA_DIR

# Centralized paths for data files (single source of truth)
STORE_FILE = DATA_DIR / 'documents.json'
CACHE_FILE = DATA_DIR / 'local_cache.json'
# Built-in catalogue shipped with the package (not under DATA_DIR)
SEED_FILE = (Path(__file__).parent.parent / 'data' / 'seed.json').resolve()

__all__ = ['DATA_DIR', 'STORE_FILE', 'CACHE_FILE', 'SEED_FILE']
