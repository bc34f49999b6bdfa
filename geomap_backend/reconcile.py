"""
Orphan reconciliation sweep.

Uploading an image and attaching it to a note are two separate calls, as are
removing it from the note and deleting it from the media host. When one of
the pair fails, a hosted object is left that no note references. This script
finds those objects and deletes them.

Run it periodically::

    python -m geomap_backend.reconcile [--dry-run]
"""
import argparse
import logging
from typing import List

from sqlalchemy.orm import Session

from geomap_backend import exc, store
from geomap_backend.media import ROOT_FOLDER, MediaGateway

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def find_orphans(db: Session, gateway: MediaGateway, prefix: str = f"{ROOT_FOLDER}/") -> List[str]:
    """Hosted storage ids under ``prefix`` that no note references."""
    referenced = store.referenced_storage_ids(db)
    return [storage_id for storage_id in gateway.list_storage_ids(prefix) if storage_id not in referenced]


# PUBLIC_INTERFACE
def sweep_orphans(db: Session, gateway: MediaGateway, dry_run: bool = False) -> List[str]:
    """
    Delete every orphaned object and return the ids that were removed
    (or would be, with ``dry_run``). Failed deletes are logged and skipped so
    the next sweep retries them.
    """
    removed = []
    for storage_id in find_orphans(db, gateway):
        if dry_run:
            logger.info("Would delete orphan %s", storage_id)
            removed.append(storage_id)
            continue
        try:
            gateway.remove(storage_id)
        except exc.UpstreamFailure:
            logger.warning("Could not delete orphan %s; will retry on the next sweep", storage_id)
            continue
        logger.info("Deleted orphan %s", storage_id)
        removed.append(storage_id)
    return removed


def main(argv=None):
    from geomap_backend.media import get_media_gateway
    from geomap_database.db import SessionLocal

    parser = argparse.ArgumentParser(description="Delete hosted images that no note references.")
    parser.add_argument("--dry-run", action="store_true", help="list orphans without deleting them")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    db = SessionLocal()
    try:
        removed = sweep_orphans(db, get_media_gateway(), dry_run=args.dry_run)
    finally:
        db.close()
    print(f"{len(removed)} orphaned image(s) {'found' if args.dry_run else 'deleted'}.")


if __name__ == "__main__":
    main()
