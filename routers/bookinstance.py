import logging
from functools import partial

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload
from models import Book, BookInstance
from database import get_async_db, get_sessionmaker
from dependencies import form_fields, path_id
from helpers import gather_reads, parse_id, redirect
from schemas.bookinstance import (
    BookInstanceDeleteView,
    BookInstanceDetailView,
    BookInstanceDraft,
    BookInstanceForm,
    BookInstanceFormView,
    BookInstanceListView,
)
from validation import FormResult
from views import render

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalog", tags=["bookinstances"])

BOOKINSTANCE_LIST_URL = "/catalog/bookinstances"


async def find_bookinstance(
    db: AsyncSession, bookinstance_id: int | None
) -> BookInstance | None:
    if bookinstance_id is None:
        return None
    stmt = (
        select(BookInstance)
        .options(selectinload(BookInstance.book))
        .where(BookInstance.id == bookinstance_id)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def all_books(db: AsyncSession) -> list[Book]:
    return list((await db.execute(select(Book).order_by(Book.title))).scalars().all())


def _selected_book(values: dict) -> str | None:
    book = values.get("book")
    return None if book in (None, "") else str(book)


async def _render_form(
    request: Request,
    session_factory: async_sessionmaker,
    bookinstance: BookInstanceDraft | None,
    selected_book: str | None,
    *,
    title: str,
    errors=None,
    books: list[Book] | None = None,
):
    if books is None:
        (books,) = await gather_reads(session_factory, all_books)
    view = BookInstanceFormView.model_validate(
        {
            "bookinstance": bookinstance,
            "book_list": books,
            "selected_book": selected_book,
            "errors": errors,
        },
        from_attributes=True,
    )
    return render(request, "bookinstance_form", view, title=title)


async def _check_book(db: AsyncSession, result: FormResult) -> None:
    if await db.get(Book, result.values["book"]) is None:
        result.add_error("book", "Book not found.")


@router.get("/bookinstances")
async def bookinstance_list(request: Request, db: AsyncSession = Depends(get_async_db)):
    stmt = (
        select(BookInstance)
        .join(BookInstance.book)
        .options(selectinload(BookInstance.book))
        .order_by(Book.title, BookInstance.id)
    )
    bookinstances = (await db.execute(stmt)).scalars().all()
    view = BookInstanceListView.model_validate(
        {"bookinstance_list": bookinstances}, from_attributes=True
    )
    return render(request, "bookinstance_list", view, title="Book Instance List")


@router.get("/bookinstance/create")
async def bookinstance_create_get(
    request: Request,
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
):
    return await _render_form(
        request, session_factory, None, None, title="Create BookInstance"
    )


@router.post("/bookinstance/create")
async def bookinstance_create_post(
    request: Request,
    fields: dict = Depends(form_fields),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
    db: AsyncSession = Depends(get_async_db),
):
    result = BookInstanceForm.validate_form(fields)
    if result.ok:
        await _check_book(db, result)
    if not result.ok:
        logger.debug("Rejected book copy submission with %d errors", len(result.errors))
        return await _render_form(
            request,
            session_factory,
            BookInstanceDraft.from_values(result.values),
            _selected_book(result.values),
            title="Create BookInstance",
            errors=result.errors,
        )

    values = result.values
    bookinstance = BookInstance(
        book_id=values["book"],
        imprint=values["imprint"],
        status=values["status"],
        due_back=values["due_back"],
    )
    db.add(bookinstance)
    await db.commit()
    logger.info("Created book copy %s of book %s", bookinstance.id, bookinstance.book_id)
    return redirect(bookinstance.url)


@router.get("/bookinstance/{id}")
async def bookinstance_detail(
    request: Request,
    bookinstance_id: int | None = Depends(path_id),
    db: AsyncSession = Depends(get_async_db),
):
    bookinstance = await find_bookinstance(db, bookinstance_id)
    if bookinstance is None:
        raise HTTPException(status_code=404, detail="Book copy not found")
    view = BookInstanceDetailView.model_validate(
        {"bookinstance": bookinstance}, from_attributes=True
    )
    return render(
        request, "bookinstance_detail", view, title=f"Copy: {bookinstance.book.title}"
    )


@router.get("/bookinstance/{id}/delete")
async def bookinstance_delete_get(
    request: Request,
    bookinstance_id: int | None = Depends(path_id),
    db: AsyncSession = Depends(get_async_db),
):
    bookinstance = await find_bookinstance(db, bookinstance_id)
    if bookinstance is None:
        return redirect(BOOKINSTANCE_LIST_URL)
    view = BookInstanceDeleteView.model_validate(
        {"bookinstance": bookinstance}, from_attributes=True
    )
    return render(request, "bookinstance_delete", view, title="Delete BookInstance")


@router.post("/bookinstance/{id}/delete")
async def bookinstance_delete_post(
    request: Request,
    bookinstance_id: int | None = Depends(path_id),
    bookinstanceid: str = Form(""),
    db: AsyncSession = Depends(get_async_db),
):
    if bookinstance_id is None or parse_id(bookinstanceid) != bookinstance_id:
        return redirect(BOOKINSTANCE_LIST_URL)

    bookinstance = await find_bookinstance(db, bookinstance_id)
    if bookinstance is None:
        return redirect(BOOKINSTANCE_LIST_URL)

    book_url = bookinstance.book.url
    await db.execute(delete(BookInstance).where(BookInstance.id == bookinstance_id))
    await db.commit()
    logger.info("Deleted book copy %s", bookinstance_id)
    return redirect(book_url)


@router.get("/bookinstance/{id}/update")
async def bookinstance_update_get(
    request: Request,
    bookinstance_id: int | None = Depends(path_id),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
):
    bookinstance, books = await gather_reads(
        session_factory,
        partial(find_bookinstance, bookinstance_id=bookinstance_id),
        all_books,
    )
    if bookinstance is None:
        return redirect(BOOKINSTANCE_LIST_URL)
    return await _render_form(
        request,
        session_factory,
        BookInstanceDraft.from_entity(bookinstance),
        str(bookinstance.book_id),
        title="Update BookInstance",
        books=books,
    )


@router.post("/bookinstance/{id}/update")
async def bookinstance_update_post(
    request: Request,
    bookinstance_id: int | None = Depends(path_id),
    fields: dict = Depends(form_fields),
    session_factory: async_sessionmaker = Depends(get_sessionmaker),
    db: AsyncSession = Depends(get_async_db),
):
    bookinstance = await find_bookinstance(db, bookinstance_id)
    if bookinstance is None:
        return redirect(BOOKINSTANCE_LIST_URL)

    result = BookInstanceForm.validate_form(fields)
    if result.ok:
        await _check_book(db, result)
    if not result.ok:
        logger.debug("Rejected book copy submission with %d errors", len(result.errors))
        return await _render_form(
            request,
            session_factory,
            BookInstanceDraft.from_values(result.values, bookinstance_id),
            _selected_book(result.values),
            title="Update BookInstance",
            errors=result.errors,
        )

    for key, val in result.values.items():
        setattr(bookinstance, "book_id" if key == "book" else key, val)
    await db.commit()
    logger.info("Updated book copy %s", bookinstance_id)
    return redirect(bookinstance.url)
