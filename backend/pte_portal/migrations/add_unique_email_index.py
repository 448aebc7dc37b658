# pte_portal/migrations/add_unique_email_index.py
"""
One-off migration for databases created before emails were normalised.

Lower-cases every stored email, reports addresses that collide after
normalisation, and then creates the unique index on `users.email`. The index
is skipped while collisions remain, since MongoDB would refuse to build it.

Usage:
    python -m pte_portal.migrations.add_unique_email_index
"""

import asyncio
import logging
from collections import defaultdict
from typing import Dict, List

from ..core.config import validate_required_settings
from ..db.database import connect_to_mongo, close_mongo_connection, USER_COLLECTION

logger = logging.getLogger(__name__)

UNIQUE_EMAIL_INDEX = "email_unique"


async def find_email_collisions(collection) -> Dict[str, List]:
    """Normalised email -> ids of the accounts sharing it, for emails used more than once."""
    owners = defaultdict(list)
    async for doc in collection.find({}, projection={"email": 1}):
        email = (doc.get("email") or "").strip().lower()
        owners[email].append(doc["_id"])
    return {email: ids for email, ids in owners.items() if len(ids) > 1}


async def normalise_emails(collection) -> int:
    """Rewrites non-normalised emails in place. Returns the number of documents changed."""
    changed = 0
    async for doc in collection.find({}, projection={"email": 1}):
        email = doc.get("email")
        if isinstance(email, str) and email != email.strip().lower():
            await collection.update_one({"_id": doc["_id"]}, {"$set": {"email": email.strip().lower()}})
            changed += 1
    return changed


async def migrate(db) -> bool:
    """Returns True when the unique index exists at the end of the run."""
    collection = db[USER_COLLECTION]

    collisions = await find_email_collisions(collection)
    if collisions:
        for email, ids in collisions.items():
            logger.error(f"Email '{email}' is shared by accounts {ids}. Resolve manually, then rerun.")
        return False

    changed = await normalise_emails(collection)
    logger.info(f"Normalised {changed} email address(es).")

    await collection.create_index([("email", 1)], unique=True, name=UNIQUE_EMAIL_INDEX)
    logger.info(f"Successfully ensured unique index '{UNIQUE_EMAIL_INDEX}' on {USER_COLLECTION}.email.")
    return True


async def main() -> None:
    validate_required_settings()
    client, db = await connect_to_mongo()
    try:
        await migrate(db)
    finally:
        close_mongo_connection(client)


if __name__ == "__main__":
    asyncio.run(main())
