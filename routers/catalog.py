from functools import partial

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from models import Author, Book, BookInstance, Genre
from database import get_sessionmaker
from helpers import gather_reads
from views import render

router = APIRouter(prefix="/catalog", tags=["catalog"])


class CatalogCounts(BaseModel):
    book_count: int
    book_instance_count: int
    book_instance_available_count: int
    author_count: int
    genre_count: int


async def count(db: AsyncSession, model, where=None) -> int:
    stmt = select(func.count()).select_from(model)
    if where is not None:
        stmt = stmt.where(where)
    return int(await db.scalar(stmt) or 0)


@router.get("/")
async def index(
    request: Request,
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
):
    books, copies, available, authors, genres = await gather_reads(
        session_factory,
        partial(count, model=Book),
        partial(count, model=BookInstance),
        partial(count, model=BookInstance, where=BookInstance.status == "Available"),
        partial(count, model=Author),
        partial(count, model=Genre),
    )
    view = CatalogCounts(
        book_count=books,
        book_instance_count=copies,
        book_instance_available_count=available,
        author_count=authors,
        genre_count=genres,
    )
    return render(request, "index", view, title="Local Library Home")
