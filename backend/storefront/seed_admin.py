"""
Storefront Backend — Admin Account Seeder
===========================================

What:  Creates the admin login from ADMIN_EMAIL / ADMIN_PASSWORD.
Why:   The API has no sign-up route; the single admin account is provisioned
       out of band.
How:   python -m storefront.seed_admin

Exit codes:
    0  account created (or already present)
    1  credentials missing from the environment
"""

import asyncio
import logging
import sys

from storefront.config import settings
from storefront.database import close_client, ensure_indexes, get_db
from storefront.exceptions import DuplicateError
from storefront.services.user_service import user_service

logger = logging.getLogger("storefront.seed_admin")


async def seed_admin() -> int:
    if not settings.admin_email or not settings.admin_password:
        logger.error("ADMIN_EMAIL and ADMIN_PASSWORD must both be set")
        return 1

    db = get_db()
    try:
        await ensure_indexes(db)
        user = await user_service.create_user(db, settings.admin_email, settings.admin_password)
        logger.info("Admin account created: %s (%s)", user.email, user.id)
    except DuplicateError:
        logger.info("Admin account %s already exists; nothing to do", settings.admin_email)
    finally:
        await close_client()
    return 0


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    sys.exit(asyncio.run(seed_admin()))


if __name__ == "__main__":
    main()
