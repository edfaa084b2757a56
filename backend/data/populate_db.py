import glob
import os

from .knowledge_store import KnowledgeStore
from ..utils.logger import get_logger

logger = get_logger("store")

SEED_DIR = os.path.join(os.path.dirname(__file__), "raw")


def populate_businesses(store: KnowledgeStore = None, seed_dir: str = SEED_DIR):
    """
    Load every seed JSON in ``seed_dir``.

    Seed files are named after their business id; businesses already in the
    store are skipped, so running this twice is harmless.
    """
    store = store or KnowledgeStore()
    existing = {b["id"] for b in store.list_businesses()}
    seeded = []

    for path in sorted(glob.glob(os.path.join(seed_dir, "*.json"))):
        business_id = os.path.splitext(os.path.basename(path))[0]
        if business_id in existing:
            logger.info(f"Business {business_id} already present. Skipping {path}.")
            continue
        seeded.append(store.load_from_file(path))

    logger.info(f"Seeded {len(seeded)} businesses from {seed_dir}")
    return seeded


if __name__ == "__main__":
    populate_businesses()
