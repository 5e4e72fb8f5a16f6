"""Password hashing helpers"""
import logging

from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from .errors import InternalError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


async def hash_password(password: str) -> str:
    """Hash with bcrypt at its default cost, off the event loop."""
    try:
        return await run_in_threadpool(pwd_context.hash, password)
    except (ValueError, TypeError) as e:
        logger.error("Failed to hash password: %s", e)
        raise InternalError("Failed to hash password") from e
