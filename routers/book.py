import logging
from functools import partial

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload
from models import Author, Book, BookGenre, BookInstance, Genre
from database import get_async_db, get_sessionmaker
from dependencies import form_fields, path_id
from helpers import gather_reads, parse_id, redirect
from schemas.book import (
    BookDeleteView,
    BookDetailView,
    BookDraft,
    BookForm,
    BookFormView,
    BookListView,
    genre_options,
)
from validation import FormResult
from views import render

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalog", tags=["books"])

BOOK_LIST_URL = "/catalog/books"


async def find_book(db: AsyncSession, book_id: int | None) -> Book | None:
    """Book with its author and genres resolved."""
    if book_id is None:
        return None
    stmt = (
        select(Book)
        .options(selectinload(Book.author))
        .options(selectinload(Book.genre_links).selectinload(BookGenre.genre))
        .where(Book.id == book_id)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def find_book_instances(db: AsyncSession, book_id: int | None) -> list[BookInstance]:
    if book_id is None:
        return []
    stmt = select(BookInstance).where(BookInstance.book_id == book_id).order_by(BookInstance.id)
    return list((await db.execute(stmt)).scalars().all())


async def all_authors(db: AsyncSession) -> list[Author]:
    stmt = select(Author).order_by(Author.family_name, Author.first_name)
    return list((await db.execute(stmt)).scalars().all())


async def all_genres(db: AsyncSession) -> list[Genre]:
    return list((await db.execute(select(Genre).order_by(Genre.name))).scalars().all())


async def _author_exists(db: AsyncSession, author_id: int) -> bool:
    return await db.get(Author, author_id) is not None


async def _existing_genre_ids(db: AsyncSession, genre_ids: list[int]) -> set[int]:
    if not genre_ids:
        return set()
    stmt = select(Genre.id).where(Genre.id.in_(genre_ids))
    return set((await db.execute(stmt)).scalars().all())


async def check_references(
    session_factory: async_sessionmaker, result: FormResult
) -> None:
    """Record an error for every author or genre id that has no record."""
    genre_ids = _selected_genre_ids(result.values["genre"])
    author_found, found_genre_ids = await gather_reads(
        session_factory,
        partial(_author_exists, author_id=result.values["author"]),
        partial(_existing_genre_ids, genre_ids=genre_ids),
    )
    if not author_found:
        result.add_error("author", "Author not found.")
    if any(gid not in found_genre_ids for gid in genre_ids):
        result.add_error("genre", "Genre not found.")


def _selected_genre_ids(genre: list) -> list[int]:
    """Submitted genre ids in order, blanks and repeats dropped."""
    return list(dict.fromkeys(gid for gid in genre if gid is not None))


def _genre_links(genre: list) -> list[BookGenre]:
    return [
        BookGenre(genre_id=gid, position=position)
        for position, gid in enumerate(_selected_genre_ids(genre))
    ]


async def _render_form(
    request: Request,
    session_factory: async_sessionmaker,
    book: BookDraft | None,
    *,
    title: str,
    errors=None,
    authors: list[Author] | None = None,
    genres: list[Genre] | None = None,
):
    if authors is None or genres is None:
        authors, genres = await gather_reads(session_factory, all_authors, all_genres)
    view = BookFormView.model_validate(
        {
            "book": book,
            "authors": authors,
            "genres": genre_options(genres, book.genre if book else []),
            "errors": errors,
        },
        from_attributes=True,
    )
    return render(request, "book_form", view, title=title)


@router.get("/books")
async def book_list(request: Request, db: AsyncSession = Depends(get_async_db)):
    stmt = select(Book).options(selectinload(Book.author)).order_by(Book.title)
    books = (await db.execute(stmt)).scalars().all()
    view = BookListView.model_validate({"book_list": books}, from_attributes=True)
    return render(request, "book_list", view, title="Book List")


@router.get("/book/create")
async def book_create_get(
    request: Request,
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
):
    return await _render_form(request, session_factory, None, title="Create Book")


@router.post("/book/create")
async def book_create_post(
    request: Request,
    fields: dict = Depends(form_fields),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
    db: AsyncSession = Depends(get_async_db),
):
    result = BookForm.validate_form(fields)
    if result.ok:
        await check_references(session_factory, result)
    if not result.ok:
        logger.debug("Rejected book submission with %d errors", len(result.errors))
        return await _render_form(
            request,
            session_factory,
            BookDraft.from_values(result.values),
            title="Create Book",
            errors=result.errors,
        )

    values = result.values
    book = Book(
        title=values["title"],
        author_id=values["author"],
        summary=values["summary"],
        isbn=values["isbn"],
        genre_links=_genre_links(values["genre"]),
    )
    db.add(book)
    await db.commit()
    logger.info("Created book %s", book.id)
    return redirect(book.url)


@router.get("/book/{id}")
async def book_detail(
    request: Request,
    book_id: int | None = Depends(path_id),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
):
    book, instances = await gather_reads(
        session_factory,
        partial(find_book, book_id=book_id),
        partial(find_book_instances, book_id=book_id),
    )
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found")
    view = BookDetailView.model_validate(
        {"book": book, "book_instances": instances}, from_attributes=True
    )
    return render(request, "book_detail", view, title=book.title)


@router.get("/book/{id}/delete")
async def book_delete_get(
    request: Request,
    book_id: int | None = Depends(path_id),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
):
    book, instances = await gather_reads(
        session_factory,
        partial(find_book, book_id=book_id),
        partial(find_book_instances, book_id=book_id),
    )
    if book is None:
        return redirect(BOOK_LIST_URL)
    view = BookDeleteView.model_validate(
        {"book": book, "book_instances": instances}, from_attributes=True
    )
    return render(request, "book_delete", view, title="Delete Book")


@router.post("/book/{id}/delete")
async def book_delete_post(
    request: Request,
    book_id: int | None = Depends(path_id),
    bookid: str = Form(""),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
    db: AsyncSession = Depends(get_async_db),
):
    if book_id is None or parse_id(bookid) != book_id:
        return redirect(BOOK_LIST_URL)

    book, instances = await gather_reads(
        session_factory,
        partial(find_book, book_id=book_id),
        partial(find_book_instances, book_id=book_id),
    )
    if book is None:
        return redirect(BOOK_LIST_URL)

    if not instances:
        try:
            await db.execute(delete(BookGenre).where(BookGenre.book_id == book_id))
            await db.execute(delete(Book).where(Book.id == book_id))
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning("Book %s gained copies before it could be deleted", book_id)
            instances = await find_book_instances(db, book_id)
        else:
            logger.info("Deleted book %s", book_id)
            return redirect(BOOK_LIST_URL)

    logger.info("Book %s has %d copies, not deleting", book_id, len(instances))
    view = BookDeleteView.model_validate(
        {"book": book, "book_instances": instances}, from_attributes=True
    )
    return render(request, "book_delete", view, title="Delete Book")


@router.get("/book/{id}/update")
async def book_update_get(
    request: Request,
    book_id: int | None = Depends(path_id),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
):
    book, authors, genres = await gather_reads(
        session_factory,
        partial(find_book, book_id=book_id),
        all_authors,
        all_genres,
    )
    if book is None:
        return redirect(BOOK_LIST_URL)
    return await _render_form(
        request,
        session_factory,
        BookDraft.from_entity(book),
        title="Update Book",
        authors=authors,
        genres=genres,
    )


@router.post("/book/{id}/update")
async def book_update_post(
    request: Request,
    book_id: int | None = Depends(path_id),
    fields: dict = Depends(form_fields),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
    db: AsyncSession = Depends(get_async_db),
):
    book = await find_book(db, book_id)
    if book is None:
        return redirect(BOOK_LIST_URL)

    result = BookForm.validate_form(fields)
    if result.ok:
        await check_references(session_factory, result)
    if not result.ok:
        logger.debug("Rejected book submission with %d errors", len(result.errors))
        return await _render_form(
            request,
            session_factory,
            BookDraft.from_values(result.values, book_id),
            title="Update Book",
            errors=result.errors,
        )

    values = result.values
    book.title = values["title"]
    book.author_id = values["author"]
    book.summary = values["summary"]
    book.isbn = values["isbn"]
    # old links go first so a kept genre can be re-inserted at its new position
    book.genre_links.clear()
    await db.flush()
    book.genre_links.extend(_genre_links(values["genre"]))
    await db.commit()
    logger.info("Updated book %s", book_id)
    return redirect(book.url)
