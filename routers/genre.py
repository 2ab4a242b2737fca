import logging
from functools import partial

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from models import Book, BookGenre, Genre
from database import get_async_db, get_sessionmaker
from dependencies import form_fields, path_id
from helpers import gather_reads, parse_id, redirect
from schemas.genre import (
    GenreDeleteView,
    GenreDetailView,
    GenreDraft,
    GenreForm,
    GenreFormView,
    GenreListView,
)
from views import render

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalog", tags=["genres"])

GENRE_LIST_URL = "/catalog/genres"


async def find_genre(db: AsyncSession, genre_id: int | None) -> Genre | None:
    if genre_id is None:
        return None
    return await db.get(Genre, genre_id)


async def find_genre_books(db: AsyncSession, genre_id: int | None) -> list[Book]:
    if genre_id is None:
        return []
    stmt = (
        select(Book)
        .where(Book.genre_links.any(BookGenre.genre_id == genre_id))
        .order_by(Book.title)
    )
    return list((await db.execute(stmt)).scalars().all())


async def find_genre_by_name(
    db: AsyncSession, name: str, exclude_id: int | None = None
) -> Genre | None:
    """Case-insensitive lookup, the same comparison the unique index makes."""
    stmt = select(Genre).where(func.lower(Genre.name) == func.lower(name))
    if exclude_id is not None:
        stmt = stmt.where(Genre.id != exclude_id)
    return (await db.execute(stmt.limit(1))).scalar_one_or_none()


async def _save_genre(db: AsyncSession, genre: Genre) -> Genre:
    """Commit ``genre``; if another request took the name first, return that genre."""
    name, genre_id = genre.name, genre.id
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await find_genre_by_name(db, name, exclude_id=genre_id)
        if existing is None:
            raise
        logger.warning("Genre name %r was taken concurrently by %s", name, existing.id)
        return existing
    return genre


@router.get("/genres")
async def genre_list(request: Request, db: AsyncSession = Depends(get_async_db)):
    genres = (await db.execute(select(Genre).order_by(Genre.name))).scalars().all()
    view = GenreListView.model_validate({"genre_list": genres}, from_attributes=True)
    return render(request, "genre_list", view, title="Genre List")


@router.get("/genre/create")
async def genre_create_get(request: Request):
    return render(request, "genre_form", GenreFormView(), title="Create Genre")


@router.post("/genre/create")
async def genre_create_post(
    request: Request,
    fields: dict = Depends(form_fields),
    db: AsyncSession = Depends(get_async_db),
):
    result = GenreForm.validate_form(fields)
    if not result.ok:
        logger.debug("Rejected genre submission with %d errors", len(result.errors))
        view = GenreFormView(
            genre=GenreDraft(name=result.values["name"]), errors=result.errors
        )
        return render(request, "genre_form", view, title="Create Genre")

    name = result.values["name"]
    existing = await find_genre_by_name(db, name)
    if existing is not None:
        logger.info("Genre %r already exists as %s", name, existing.id)
        return redirect(existing.url)

    genre = Genre(name=name)
    db.add(genre)
    saved = await _save_genre(db, genre)
    if saved is genre:
        logger.info("Created genre %s", genre.id)
    return redirect(saved.url)


@router.get("/genre/{id}")
async def genre_detail(
    request: Request,
    genre_id: int | None = Depends(path_id),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
):
    genre, books = await gather_reads(
        session_factory,
        partial(find_genre, genre_id=genre_id),
        partial(find_genre_books, genre_id=genre_id),
    )
    if genre is None:
        raise HTTPException(status_code=404, detail="Genre not found")
    view = GenreDetailView.model_validate(
        {"genre": genre, "genre_books": books}, from_attributes=True
    )
    return render(request, "genre_detail", view, title=f"{genre.name} books")


@router.get("/genre/{id}/delete")
async def genre_delete_get(
    request: Request,
    genre_id: int | None = Depends(path_id),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
):
    genre, books = await gather_reads(
        session_factory,
        partial(find_genre, genre_id=genre_id),
        partial(find_genre_books, genre_id=genre_id),
    )
    if genre is None:
        return redirect(GENRE_LIST_URL)
    view = GenreDeleteView.model_validate(
        {"genre": genre, "genre_books": books}, from_attributes=True
    )
    return render(request, "genre_delete", view, title="Delete Genre")


@router.post("/genre/{id}/delete")
async def genre_delete_post(
    request: Request,
    genre_id: int | None = Depends(path_id),
    genreid: str = Form(""),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
    db: AsyncSession = Depends(get_async_db),
):
    if genre_id is None or parse_id(genreid) != genre_id:
        return redirect(GENRE_LIST_URL)

    genre, books = await gather_reads(
        session_factory,
        partial(find_genre, genre_id=genre_id),
        partial(find_genre_books, genre_id=genre_id),
    )
    if genre is None:
        return redirect(GENRE_LIST_URL)

    if not books:
        try:
            await db.execute(delete(Genre).where(Genre.id == genre_id))
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning("Genre %s gained books before it could be deleted", genre_id)
            books = await find_genre_books(db, genre_id)
        else:
            logger.info("Deleted genre %s", genre_id)
            return redirect(GENRE_LIST_URL)

    logger.info("Genre %s has %d books, not deleting", genre_id, len(books))
    view = GenreDeleteView.model_validate(
        {"genre": genre, "genre_books": books}, from_attributes=True
    )
    return render(request, "genre_delete", view, title="Delete Genre")


@router.get("/genre/{id}/update")
async def genre_update_get(
    request: Request,
    genre_id: int | None = Depends(path_id),
    db: AsyncSession = Depends(get_async_db),
):
    genre = await find_genre(db, genre_id)
    if genre is None:
        return redirect(GENRE_LIST_URL)
    view = GenreFormView(genre=GenreDraft(id=genre.id, name=genre.name))
    return render(request, "genre_form", view, title="Update Genre")


@router.post("/genre/{id}/update")
async def genre_update_post(
    request: Request,
    genre_id: int | None = Depends(path_id),
    fields: dict = Depends(form_fields),
    db: AsyncSession = Depends(get_async_db),
):
    genre = await find_genre(db, genre_id)
    if genre is None:
        return redirect(GENRE_LIST_URL)

    result = GenreForm.validate_form(fields)
    if not result.ok:
        logger.debug("Rejected genre submission with %d errors", len(result.errors))
        view = GenreFormView(
            genre=GenreDraft(id=genre_id, name=result.values["name"]),
            errors=result.errors,
        )
        return render(request, "genre_form", view, title="Update Genre")

    name = result.values["name"]
    # renaming a genre to a different case of its own name is allowed
    existing = await find_genre_by_name(db, name, exclude_id=genre_id)
    if existing is not None:
        logger.info("Genre %r already exists as %s", name, existing.id)
        return redirect(existing.url)

    genre.name = name
    saved = await _save_genre(db, genre)
    if saved is genre:
        logger.info("Updated genre %s", genre_id)
    return redirect(saved.url)
