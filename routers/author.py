import logging
from functools import partial

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from models import Author, Book
from database import get_async_db, get_sessionmaker
from dependencies import form_fields, path_id
from helpers import gather_reads, parse_id, redirect
from schemas.author import (
    AuthorDeleteView,
    AuthorDetailView,
    AuthorDraft,
    AuthorForm,
    AuthorFormView,
    AuthorListView,
)
from views import render

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalog", tags=["authors"])

AUTHOR_LIST_URL = "/catalog/authors"


async def find_author(db: AsyncSession, author_id: int | None) -> Author | None:
    if author_id is None:
        return None
    return await db.get(Author, author_id)


async def find_author_books(db: AsyncSession, author_id: int | None) -> list[Book]:
    if author_id is None:
        return []
    stmt = select(Book).where(Book.author_id == author_id).order_by(Book.title)
    return list((await db.execute(stmt)).scalars().all())


@router.get("/authors")
async def author_list(request: Request, db: AsyncSession = Depends(get_async_db)):
    stmt = select(Author).order_by(Author.family_name, Author.first_name)
    authors = (await db.execute(stmt)).scalars().all()
    view = AuthorListView.model_validate({"author_list": authors}, from_attributes=True)
    return render(request, "author_list", view, title="Author List")


@router.get("/author/create")
async def author_create_get(request: Request):
    return render(request, "author_form", AuthorFormView(), title="Create Author")


@router.post("/author/create")
async def author_create_post(
    request: Request,
    fields: dict = Depends(form_fields),
    db: AsyncSession = Depends(get_async_db),
):
    result = AuthorForm.validate_form(fields)
    if not result.ok:
        logger.debug("Rejected author submission with %d errors", len(result.errors))
        view = AuthorFormView(
            author=AuthorDraft.from_values(result.values), errors=result.errors
        )
        return render(request, "author_form", view, title="Create Author")

    author = Author(**result.values)
    db.add(author)
    await db.commit()
    logger.info("Created author %s", author.id)
    return redirect(author.url)


@router.get("/author/{id}")
async def author_detail(
    request: Request,
    author_id: int | None = Depends(path_id),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
):
    author, books = await gather_reads(
        session_factory,
        partial(find_author, author_id=author_id),
        partial(find_author_books, author_id=author_id),
    )
    if author is None:
        raise HTTPException(status_code=404, detail="Author not found")
    view = AuthorDetailView.model_validate(
        {"author": author, "author_books": books}, from_attributes=True
    )
    return render(request, "author_detail", view, title=author.name)


@router.get("/author/{id}/delete")
async def author_delete_get(
    request: Request,
    author_id: int | None = Depends(path_id),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
):
    author, books = await gather_reads(
        session_factory,
        partial(find_author, author_id=author_id),
        partial(find_author_books, author_id=author_id),
    )
    if author is None:
        return redirect(AUTHOR_LIST_URL)
    view = AuthorDeleteView.model_validate(
        {"author": author, "author_books": books}, from_attributes=True
    )
    return render(request, "author_delete", view, title="Delete Author")


@router.post("/author/{id}/delete")
async def author_delete_post(
    request: Request,
    author_id: int | None = Depends(path_id),
    authorid: str = Form(""),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
    db: AsyncSession = Depends(get_async_db),
):
    if author_id is None or parse_id(authorid) != author_id:
        return redirect(AUTHOR_LIST_URL)

    author, books = await gather_reads(
        session_factory,
        partial(find_author, author_id=author_id),
        partial(find_author_books, author_id=author_id),
    )
    if author is None:
        return redirect(AUTHOR_LIST_URL)

    if not books:
        try:
            await db.execute(delete(Author).where(Author.id == author_id))
            await db.commit()
        except IntegrityError:
            # a book was added after the dependents were read
            await db.rollback()
            logger.warning("Author %s gained books before it could be deleted", author_id)
            books = await find_author_books(db, author_id)
        else:
            logger.info("Deleted author %s", author_id)
            return redirect(AUTHOR_LIST_URL)

    logger.info("Author %s has %d books, not deleting", author_id, len(books))
    view = AuthorDeleteView.model_validate(
        {"author": author, "author_books": books}, from_attributes=True
    )
    return render(request, "author_delete", view, title="Delete Author")


@router.get("/author/{id}/update")
async def author_update_get(
    request: Request,
    author_id: int | None = Depends(path_id),
    db: AsyncSession = Depends(get_async_db),
):
    author = await find_author(db, author_id)
    if author is None:
        return redirect(AUTHOR_LIST_URL)
    view = AuthorFormView(author=AuthorDraft.from_entity(author))
    return render(request, "author_form", view, title="Update Author")


@router.post("/author/{id}/update")
async def author_update_post(
    request: Request,
    author_id: int | None = Depends(path_id),
    fields: dict = Depends(form_fields),
    db: AsyncSession = Depends(get_async_db),
):
    author = await find_author(db, author_id)
    if author is None:
        return redirect(AUTHOR_LIST_URL)

    result = AuthorForm.validate_form(fields)
    if not result.ok:
        logger.debug("Rejected author submission with %d errors", len(result.errors))
        view = AuthorFormView(
            author=AuthorDraft.from_values(result.values, author_id),
            errors=result.errors,
        )
        return render(request, "author_form", view, title="Update Author")

    for key, val in result.values.items():
        setattr(author, key, val)
    await db.commit()
    logger.info("Updated author %s", author_id)
    return redirect(author.url)
