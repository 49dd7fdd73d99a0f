"""Repository implementations.

Repositories only ``flush()``; commit and rollback belong to the unit of work
that owns the session.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from readshare.domain.entities import Book, Friendship, Profile, Quote, ReadingLog, Review, pair_key
from readshare.domain.repositories import (
    FriendshipRole,
    IBookRepository,
    IFriendshipRepository,
    IProfileRepository,
    IQuoteRepository,
    IReadingLogRepository,
    IReviewRepository,
    ReadingLogQuery,
    ReadingLogRow,
)
from readshare.infrastructure.database.models import (
    BookModel,
    FriendshipModel,
    ProfileModel,
    QuoteModel,
    ReadingLogModel,
    ReviewModel,
)

LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input only ever matches literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def _contains_pattern(term: str) -> str:
    return f"%{escape_like(term)}%"


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Profile Repository
# ---------------------------------------------------------------------------
class ProfileRepository(IProfileRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, profile: Profile) -> Profile:
        db_profile = ProfileModel(
            id=profile.id,
            nickname=profile.nickname,
            avatar_url=profile.avatar_url,
            bio=profile.bio,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )
        self.session.add(db_profile)
        await self.session.flush()
        return self._to_entity(db_profile)

    async def get_by_id(self, user_id: UUID) -> Optional[Profile]:
        result = await self.session.execute(select(ProfileModel).where(ProfileModel.id == user_id))
        db_profile = result.scalar_one_or_none()
        return self._to_entity(db_profile) if db_profile else None

    async def get_by_nickname(self, nickname: str) -> Optional[Profile]:
        result = await self.session.execute(
            select(ProfileModel).where(ProfileModel.nickname == nickname)
        )
        db_profile = result.scalar_one_or_none()
        return self._to_entity(db_profile) if db_profile else None

    async def get_many(self, user_ids: list[UUID]) -> dict[UUID, Profile]:
        if not user_ids:
            return {}
        result = await self.session.execute(
            select(ProfileModel).where(ProfileModel.id.in_(list(user_ids)))
        )
        return {p.id: self._to_entity(p) for p in result.scalars().all()}

    async def update(self, profile: Profile) -> Profile:
        result = await self.session.execute(select(ProfileModel).where(ProfileModel.id == profile.id))
        db_profile = result.scalar_one()
        db_profile.nickname = profile.nickname
        db_profile.avatar_url = profile.avatar_url
        db_profile.bio = profile.bio
        db_profile.updated_at = _now()
        await self.session.flush()
        return self._to_entity(db_profile)

    async def search_by_nickname(
        self, term: str, exclude_ids: frozenset[UUID], offset: int, limit: int
    ) -> tuple[list[Profile], int]:
        conditions = [ProfileModel.nickname.ilike(_contains_pattern(term), escape=LIKE_ESCAPE)]
        if exclude_ids:
            conditions.append(ProfileModel.id.notin_(list(exclude_ids)))

        total = await self.session.scalar(
            select(func.count()).select_from(ProfileModel).where(*conditions)
        )
        result = await self.session.execute(
            select(ProfileModel)
            .where(*conditions)
            .order_by(ProfileModel.nickname.asc(), ProfileModel.id.asc())
            .offset(offset)
            .limit(limit)
        )
        return [self._to_entity(p) for p in result.scalars().all()], total or 0

    @staticmethod
    def _to_entity(model: ProfileModel) -> Profile:
        return Profile(
            id=model.id,
            nickname=model.nickname,
            avatar_url=model.avatar_url,
            bio=model.bio,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


# ---------------------------------------------------------------------------
# Friendship Repository
# ---------------------------------------------------------------------------
class FriendshipRepository(IFriendshipRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, friendship: Friendship) -> Friendship:
        db_friendship = FriendshipModel(
            id=friendship.id,
            requester_id=friendship.requester_id,
            addressee_id=friendship.addressee_id,
            pair_key=friendship.pair_key,
            status=friendship.status,
            created_at=friendship.created_at,
            updated_at=friendship.updated_at,
        )
        self.session.add(db_friendship)
        await self.session.flush()
        return self._to_entity(db_friendship)

    async def get_by_id(self, friendship_id: UUID, for_update: bool = False) -> Optional[Friendship]:
        stmt = select(FriendshipModel).where(FriendshipModel.id == friendship_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        db_friendship = result.scalar_one_or_none()
        return self._to_entity(db_friendship) if db_friendship else None

    async def get_between(
        self, user_a: UUID, user_b: UUID, for_update: bool = False
    ) -> Optional[Friendship]:
        stmt = select(FriendshipModel).where(FriendshipModel.pair_key == pair_key(user_a, user_b))
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        db_friendship = result.scalar_one_or_none()
        return self._to_entity(db_friendship) if db_friendship else None

    async def update(self, friendship: Friendship) -> Friendship:
        result = await self.session.execute(
            select(FriendshipModel).where(FriendshipModel.id == friendship.id)
        )
        db_friendship = result.scalar_one()
        db_friendship.requester_id = friendship.requester_id
        db_friendship.addressee_id = friendship.addressee_id
        db_friendship.pair_key = friendship.pair_key
        db_friendship.status = friendship.status
        db_friendship.updated_at = _now()
        await self.session.flush()
        return self._to_entity(db_friendship)

    async def delete(self, friendship_id: UUID) -> bool:
        result = await self.session.execute(
            delete(FriendshipModel).where(FriendshipModel.id == friendship_id)
        )
        await self.session.flush()
        return result.rowcount > 0

    async def list_for_user(
        self,
        user_id: UUID,
        status: str,
        role: FriendshipRole,
        offset: int,
        limit: int,
    ) -> tuple[list[Friendship], int]:
        if role == "requester":
            party = FriendshipModel.requester_id == user_id
        elif role == "addressee":
            party = FriendshipModel.addressee_id == user_id
        else:
            party = or_(
                FriendshipModel.requester_id == user_id,
                FriendshipModel.addressee_id == user_id,
            )
        conditions = [FriendshipModel.status == status, party]

        total = await self.session.scalar(
            select(func.count()).select_from(FriendshipModel).where(*conditions)
        )
        result = await self.session.execute(
            select(FriendshipModel)
            .where(*conditions)
            .order_by(FriendshipModel.created_at.desc(), FriendshipModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return [self._to_entity(f) for f in result.scalars().all()], total or 0

    async def counterpart_ids(self, user_id: UUID, status: str) -> set[UUID]:
        result = await self.session.execute(
            select(FriendshipModel.requester_id, FriendshipModel.addressee_id).where(
                FriendshipModel.status == status,
                or_(
                    FriendshipModel.requester_id == user_id,
                    FriendshipModel.addressee_id == user_id,
                ),
            )
        )
        return {
            addressee if requester == user_id else requester
            for requester, addressee in result.all()
        }

    @staticmethod
    def _to_entity(model: FriendshipModel) -> Friendship:
        return Friendship(
            id=model.id,
            requester_id=model.requester_id,
            addressee_id=model.addressee_id,
            status=model.status,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


# ---------------------------------------------------------------------------
# Book Repository
# ---------------------------------------------------------------------------
class BookRepository(IBookRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, book: Book) -> Book:
        db_book = BookModel(
            id=book.id,
            title=book.title,
            author=book.author,
            cover_image_url=book.cover_image_url,
            total_pages=book.total_pages,
            owner_id=book.owner_id,
            created_at=book.created_at,
            updated_at=book.updated_at,
        )
        self.session.add(db_book)
        await self.session.flush()
        return self._to_entity(db_book)

    async def get_by_id(self, book_id: UUID, for_update: bool = False) -> Optional[Book]:
        stmt = select(BookModel).where(BookModel.id == book_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        db_book = result.scalar_one_or_none()
        return self._to_entity(db_book) if db_book else None

    async def update(self, book: Book) -> Book:
        result = await self.session.execute(select(BookModel).where(BookModel.id == book.id))
        db_book = result.scalar_one()
        db_book.title = book.title
        db_book.author = book.author
        db_book.cover_image_url = book.cover_image_url
        db_book.total_pages = book.total_pages
        db_book.updated_at = _now()
        await self.session.flush()
        return self._to_entity(db_book)

    async def delete(self, book_id: UUID) -> bool:
        result = await self.session.execute(delete(BookModel).where(BookModel.id == book_id))
        await self.session.flush()
        return result.rowcount > 0

    @staticmethod
    def _to_entity(model: BookModel) -> Book:
        return Book(
            id=model.id,
            title=model.title,
            author=model.author,
            owner_id=model.owner_id,
            cover_image_url=model.cover_image_url,
            total_pages=model.total_pages,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


# ---------------------------------------------------------------------------
# Reading Log Repository
# ---------------------------------------------------------------------------
class ReadingLogRepository(IReadingLogRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, reading_log: ReadingLog) -> ReadingLog:
        db_log = ReadingLogModel(
            id=reading_log.id,
            book_id=reading_log.book_id,
            owner_id=reading_log.owner_id,
            status=reading_log.status,
            current_page=reading_log.current_page,
            rating=reading_log.rating,
            start_date=reading_log.start_date,
            end_date=reading_log.end_date,
            visibility=reading_log.visibility,
            review=reading_log.review,
            created_at=reading_log.created_at,
            updated_at=reading_log.updated_at,
        )
        self.session.add(db_log)
        await self.session.flush()
        return self._to_entity(db_log)

    async def get_by_id(self, reading_log_id: UUID, for_update: bool = False) -> Optional[ReadingLog]:
        stmt = select(ReadingLogModel).where(ReadingLogModel.id == reading_log_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        db_log = result.scalar_one_or_none()
        return self._to_entity(db_log) if db_log else None

    async def update(self, reading_log: ReadingLog) -> ReadingLog:
        result = await self.session.execute(
            select(ReadingLogModel).where(ReadingLogModel.id == reading_log.id)
        )
        db_log = result.scalar_one()
        db_log.book_id = reading_log.book_id
        db_log.status = reading_log.status
        db_log.current_page = reading_log.current_page
        db_log.rating = reading_log.rating
        db_log.start_date = reading_log.start_date
        db_log.end_date = reading_log.end_date
        db_log.visibility = reading_log.visibility
        db_log.review = reading_log.review
        db_log.updated_at = _now()
        await self.session.flush()
        return self._to_entity(db_log)

    async def delete(self, reading_log_id: UUID) -> bool:
        result = await self.session.execute(
            delete(ReadingLogModel).where(ReadingLogModel.id == reading_log_id)
        )
        await self.session.flush()
        return result.rowcount > 0

    async def count_by_book(self, book_id: UUID) -> int:
        total = await self.session.scalar(
            select(func.count()).select_from(ReadingLogModel).where(ReadingLogModel.book_id == book_id)
        )
        return total or 0

    async def get_row(self, reading_log_id: UUID) -> Optional[ReadingLogRow]:
        result = await self.session.execute(
            self._row_select().where(ReadingLogModel.id == reading_log_id)
        )
        row = result.one_or_none()
        return self._to_row(*row) if row else None

    async def list_rows(self, query: ReadingLogQuery) -> tuple[list[ReadingLogRow], int]:
        conditions = self._conditions(query)

        total = await self.session.scalar(
            select(func.count())
            .select_from(ReadingLogModel)
            .join(BookModel, BookModel.id == ReadingLogModel.book_id)
            .where(*conditions)
        )

        sort_column = getattr(ReadingLogModel, query.sort_field)
        if query.sort_direction == "asc":
            order_by = (sort_column.asc().nulls_last(), ReadingLogModel.id.asc())
        else:
            order_by = (sort_column.desc().nulls_last(), ReadingLogModel.id.desc())

        result = await self.session.execute(
            self._row_select()
            .where(*conditions)
            .order_by(*order_by)
            .offset(query.offset)
            .limit(query.limit)
        )
        return [self._to_row(*row) for row in result.all()], total or 0

    @staticmethod
    def _row_select():
        return (
            select(ReadingLogModel, BookModel, ProfileModel)
            .join(BookModel, BookModel.id == ReadingLogModel.book_id)
            .outerjoin(ProfileModel, ProfileModel.id == ReadingLogModel.owner_id)
        )

    @staticmethod
    def _conditions(query: ReadingLogQuery) -> list:
        visible = [
            ReadingLogModel.owner_id == query.viewer_id,
            ReadingLogModel.visibility == "public",
        ]
        if query.friend_ids:
            visible.append(
                and_(
                    ReadingLogModel.owner_id.in_(list(query.friend_ids)),
                    ReadingLogModel.visibility == "friends",
                )
            )
        conditions = [or_(*visible)]

        if query.owner_ids is not None:
            conditions.append(ReadingLogModel.owner_id.in_(list(query.owner_ids)))
        if query.excluded_owner_ids:
            conditions.append(ReadingLogModel.owner_id.notin_(list(query.excluded_owner_ids)))
        if query.statuses:
            conditions.append(ReadingLogModel.status.in_(query.statuses))
        if query.start_date_from:
            conditions.append(ReadingLogModel.start_date >= query.start_date_from)
        if query.start_date_to:
            conditions.append(ReadingLogModel.start_date <= query.start_date_to)
        if query.end_date_from:
            conditions.append(ReadingLogModel.end_date >= query.end_date_from)
        if query.end_date_to:
            conditions.append(ReadingLogModel.end_date <= query.end_date_to)
        if query.search:
            pattern = _contains_pattern(query.search)
            conditions.append(
                or_(
                    BookModel.title.ilike(pattern, escape=LIKE_ESCAPE),
                    BookModel.author.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
        return conditions

    @staticmethod
    def _to_row(
        log: ReadingLogModel, book: BookModel, profile: Optional[ProfileModel]
    ) -> ReadingLogRow:
        return ReadingLogRow(
            reading_log=ReadingLogRepository._to_entity(log),
            book=BookRepository._to_entity(book),
            profile=ProfileRepository._to_entity(profile) if profile else None,
        )

    @staticmethod
    def _to_entity(model: ReadingLogModel) -> ReadingLog:
        return ReadingLog(
            id=model.id,
            book_id=model.book_id,
            owner_id=model.owner_id,
            status=model.status,
            current_page=model.current_page,
            rating=model.rating,
            start_date=model.start_date,
            end_date=model.end_date,
            visibility=model.visibility,
            review=model.review,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


# ---------------------------------------------------------------------------
# Quote Repository
# ---------------------------------------------------------------------------
class QuoteRepository(IQuoteRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, quote: Quote) -> Quote:
        db_quote = QuoteModel(
            id=quote.id,
            reading_log_id=quote.reading_log_id,
            owner_id=quote.owner_id,
            text=quote.text,
            page_number=quote.page_number,
            noted_at=quote.noted_at,
            created_at=quote.created_at,
        )
        self.session.add(db_quote)
        await self.session.flush()
        return self._to_entity(db_quote)

    async def get_by_id(self, quote_id: UUID, for_update: bool = False) -> Optional[Quote]:
        stmt = select(QuoteModel).where(QuoteModel.id == quote_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        db_quote = result.scalar_one_or_none()
        return self._to_entity(db_quote) if db_quote else None

    async def update(self, quote: Quote) -> Quote:
        result = await self.session.execute(select(QuoteModel).where(QuoteModel.id == quote.id))
        db_quote = result.scalar_one()
        db_quote.text = quote.text
        db_quote.page_number = quote.page_number
        db_quote.noted_at = quote.noted_at
        await self.session.flush()
        return self._to_entity(db_quote)

    async def delete(self, quote_id: UUID) -> bool:
        result = await self.session.execute(delete(QuoteModel).where(QuoteModel.id == quote_id))
        await self.session.flush()
        return result.rowcount > 0

    async def list_by_reading_logs(self, reading_log_ids: list[UUID]) -> list[Quote]:
        if not reading_log_ids:
            return []
        result = await self.session.execute(
            select(QuoteModel)
            .where(QuoteModel.reading_log_id.in_(list(reading_log_ids)))
            .order_by(QuoteModel.page_number.asc(), QuoteModel.created_at.asc(), QuoteModel.id.asc())
        )
        return [self._to_entity(q) for q in result.scalars().all()]

    async def delete_by_reading_log(self, reading_log_id: UUID) -> int:
        result = await self.session.execute(
            delete(QuoteModel).where(QuoteModel.reading_log_id == reading_log_id)
        )
        await self.session.flush()
        return result.rowcount

    @staticmethod
    def _to_entity(model: QuoteModel) -> Quote:
        return Quote(
            id=model.id,
            reading_log_id=model.reading_log_id,
            owner_id=model.owner_id,
            text=model.text,
            page_number=model.page_number,
            noted_at=model.noted_at,
            created_at=model.created_at,
        )


# ---------------------------------------------------------------------------
# Review Repository
# ---------------------------------------------------------------------------
class ReviewRepository(IReviewRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, review: Review) -> Review:
        db_review = ReviewModel(
            id=review.id,
            reading_log_id=review.reading_log_id,
            owner_id=review.owner_id,
            content=review.content,
            page_number=review.page_number,
            reviewed_at=review.reviewed_at,
            created_at=review.created_at,
            updated_at=review.updated_at,
        )
        self.session.add(db_review)
        await self.session.flush()
        return self._to_entity(db_review)

    async def get_by_id(self, review_id: UUID, for_update: bool = False) -> Optional[Review]:
        stmt = select(ReviewModel).where(ReviewModel.id == review_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        db_review = result.scalar_one_or_none()
        return self._to_entity(db_review) if db_review else None

    async def update(self, review: Review) -> Review:
        result = await self.session.execute(select(ReviewModel).where(ReviewModel.id == review.id))
        db_review = result.scalar_one()
        db_review.content = review.content
        db_review.page_number = review.page_number
        db_review.reviewed_at = review.reviewed_at
        db_review.updated_at = _now()
        await self.session.flush()
        return self._to_entity(db_review)

    async def delete(self, review_id: UUID) -> bool:
        result = await self.session.execute(delete(ReviewModel).where(ReviewModel.id == review_id))
        await self.session.flush()
        return result.rowcount > 0

    async def list_by_reading_logs(self, reading_log_ids: list[UUID]) -> list[Review]:
        if not reading_log_ids:
            return []
        result = await self.session.execute(
            select(ReviewModel)
            .where(ReviewModel.reading_log_id.in_(list(reading_log_ids)))
            .order_by(ReviewModel.created_at.desc(), ReviewModel.id.desc())
        )
        return [self._to_entity(r) for r in result.scalars().all()]

    async def delete_by_reading_log(self, reading_log_id: UUID) -> int:
        result = await self.session.execute(
            delete(ReviewModel).where(ReviewModel.reading_log_id == reading_log_id)
        )
        await self.session.flush()
        return result.rowcount

    @staticmethod
    def _to_entity(model: ReviewModel) -> Review:
        return Review(
            id=model.id,
            reading_log_id=model.reading_log_id,
            owner_id=model.owner_id,
            content=model.content,
            page_number=model.page_number,
            reviewed_at=model.reviewed_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
