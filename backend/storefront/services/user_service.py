"""
Storefront Backend — User Service
===================================

What:  Admin login and account provisioning.
Why:   The admin dashboard has a single login; there is no sign-up route.
How:   Passwords are stored as bcrypt hashes and checked with
       `bcrypt.checkpw`. Login returns the user without the hash and issues
       no session or token; the frontend keeps its own logged-in flag.

Messages:
    - unknown email   → 404 "User not found"
    - wrong password  → 401 "Invalid email or password"
"""

import logging

import bcrypt
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from storefront.database import USERS
from storefront.exceptions import DuplicateError, NotFoundError, UnauthorizedError
from storefront.models.store import DocumentStore
from storefront.schemas.user import UserResponse

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        logger.error("Stored password for a user is not a valid bcrypt hash")
        return False


class UserService:

    def store(self, db: AsyncDatabase) -> DocumentStore:
        return DocumentStore(db, USERS, "User")

    async def login(self, db: AsyncDatabase, email: str, password: str) -> UserResponse:
        """
        Check credentials.

        Raises:
            NotFoundError:     no user with this email (→ 404)
            UnauthorizedError: password mismatch (→ 401)
        """
        user = await self.store(db).find_one({"email": email.lower()})
        if user is None:
            raise NotFoundError(resource="User", context={"email": email})

        if not verify_password(password, user.get("password") or ""):
            logger.info("Failed login for %s", email)
            raise UnauthorizedError()

        logger.info("Admin %s logged in", email)
        return UserResponse.from_document(user)

    async def create_user(self, db: AsyncDatabase, email: str, password: str) -> UserResponse:
        """
        Store a new user with a hashed password.

        Raises:
            DuplicateError: the email is already registered
        """
        try:
            doc = await self.store(db).create(
                {"email": email.lower(), "password": hash_password(password)}
            )
        except DuplicateKeyError:
            raise DuplicateError(message="User already exists", context={"email": email})
        return UserResponse.from_document(doc)


user_service = UserService()
