"""
tasks.py — in-process periodic maintenance.

The only background job: delete expired auth sessions. Started as an
asyncio task in main.py lifespan and cancelled on shutdown. Each pass opens
its own session from the Database (no request scope to borrow from).
"""
import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError

from jibunshi import store
from jibunshi.database import Database

logger = logging.getLogger(__name__)


async def sweep_expired_sessions_once(database: Database) -> int:
    async with database.session() as session:
        async with session.begin():
            return await store.purge_expired_auth_sessions(session)


async def run_session_sweeper(database: Database, interval_seconds: float) -> None:
    """
    Loop forever: sweep, then sleep interval_seconds.
    A database error is logged and the next pass still runs.
    """
    logger.info("Session sweeper started interval=%ss", interval_seconds)
    while True:
        try:
            await sweep_expired_sessions_once(database)
        except SQLAlchemyError:
            logger.exception("Session sweep failed")
        await asyncio.sleep(interval_seconds)
