"""SQLAlchemy-backed unit of work."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from readshare.domain.errors import ConflictError, InternalError
from readshare.domain.repositories import IUnitOfWork
from readshare.infrastructure.database.repository import (
    BookRepository,
    FriendshipRepository,
    ProfileRepository,
    QuoteRepository,
    ReadingLogRepository,
    ReviewRepository,
)

logger = logging.getLogger(__name__)


class SqlAlchemyUnitOfWork(IUnitOfWork):

    def __init__(self, session: AsyncSession, snapshot_isolation: Optional[str] = "REPEATABLE READ"):
        self.session = session
        self.snapshot_isolation = snapshot_isolation
        self.profiles = ProfileRepository(session)
        self.friendships = FriendshipRepository(session)
        self.books = BookRepository(session)
        self.reading_logs = ReadingLogRepository(session)
        self.quotes = QuoteRepository(session)
        self.reviews = ReviewRepository(session)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SqlAlchemyUnitOfWork"]:
        # Reads issued before the block may have opened an implicit transaction.
        if self.session.in_transaction():
            await self.session.commit()
        try:
            yield self
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.warning(f"Integrity conflict, transaction rolled back: {exc.orig}")
            raise ConflictError("Conflicting concurrent change, please retry") from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(f"Database error, transaction rolled back: {exc}", exc_info=True)
            raise InternalError("Database operation failed") from exc
        except BaseException:
            await self.session.rollback()
            raise

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator["SqlAlchemyUnitOfWork"]:
        """Run the block's reads in one read-only transaction at ``snapshot_isolation``."""
        if self.session.in_transaction():
            await self.session.commit()
        try:
            if self.snapshot_isolation:
                # Must be set before the transaction's first statement.
                await self.session.connection(
                    execution_options={"isolation_level": self.snapshot_isolation}
                )
            yield self
        except SQLAlchemyError as exc:
            logger.error(f"Database error during snapshot read: {exc}", exc_info=True)
            raise InternalError("Database operation failed") from exc
        finally:
            await self.session.rollback()
