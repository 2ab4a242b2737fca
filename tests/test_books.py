import pytest
from sqlalchemy.orm import selectinload

import routers.book as book_router
from helpers import gather_reads
from models import Author, Book, BookGenre, BookInstance, Genre


@pytest.fixture
async def author(store):
    return await store.add(Author(first_name="Frank", family_name="Herbert"))


@pytest.fixture
async def genres(store):
    return await store.add(
        Genre(name="Science Fiction"), Genre(name="Adventure"), Genre(name="Politics")
    )


def book_form(author, /, **overrides):
    data = {
        "title": "Dune",
        "author": str(author.id),
        "summary": "Spice must flow",
        "isbn": "9780441013593",
    }
    data.update(overrides)
    return data


async def _stored_genre_ids(store, book_id):
    book = await store.get(Book, book_id, selectinload(Book.genre_links))
    return book.genre_ids


async def test_book_list_shows_author(client, store, author):
    await store.add(Book(title="Dune", author_id=author.id, summary="s", isbn="1"))
    resp = await client.get("/catalog/books")
    assert resp.status_code == 200
    assert "Dune" in resp.text
    assert "Herbert, Frank" in resp.text


async def test_create_form_offers_authors_and_genres(client, author, genres):
    resp = await client.get("/catalog/book/create")
    assert resp.status_code == 200
    assert "Herbert, Frank" in resp.text
    for genre in genres:
        assert genre.name in resp.text


@pytest.mark.parametrize("count", [0, 1, 3])
async def test_create_book_stores_genres_in_submitted_order(
    client, store, author, genres, count
):
    chosen = [genres[2], genres[0], genres[1]][:count]
    data = book_form(author)
    data["genre"] = [str(g.id) for g in chosen]

    resp = await client.post("/catalog/book/create", data=data)
    assert resp.status_code == 303
    [book] = await store.all(Book)
    assert resp.headers["location"] == f"/catalog/book/{book.id}"
    assert await _stored_genre_ids(store, book.id) == [g.id for g in chosen]


@pytest.mark.parametrize("field", ["title", "summary", "isbn", "author"])
async def test_create_book_requires_field(client, store, author, field):
    resp = await client.post(
        "/catalog/book/create", data=book_form(author, **{field: "   "})
    )
    assert resp.status_code == 200
    assert "must not be empty." in resp.text
    assert await store.count(Book) == 0


async def test_invalid_book_keeps_selected_genres(client, store, author, genres):
    data = book_form(author, title="")
    data["genre"] = [str(genres[1].id)]
    resp = await client.post("/catalog/book/create", data=data)
    assert resp.status_code == 200
    assert "Title must not be empty." in resp.text
    assert f'value="{genres[1].id}" checked' in resp.text
    assert f'value="{genres[0].id}" checked' not in resp.text
    assert f'value="{author.id}" selected' in resp.text


async def test_create_book_with_unknown_author_is_rejected(client, store, author):
    resp = await client.post(
        "/catalog/book/create", data=book_form(author, author=str(author.id + 100))
    )
    assert resp.status_code == 200
    assert "Author not found." in resp.text
    assert await store.count(Book) == 0


async def test_create_book_with_unknown_genre_is_rejected(client, store, author, genres):
    data = book_form(author)
    data["genre"] = [str(genres[0].id), "999"]
    resp = await client.post("/catalog/book/create", data=data)
    assert resp.status_code == 200
    assert "Genre not found." in resp.text
    assert await store.count(Book) == 0


async def test_book_title_is_escaped_before_storage(client, store, author):
    resp = await client.post(
        "/catalog/book/create", data=book_form(author, title="<i>Dune</i>")
    )
    assert resp.status_code == 303
    [book] = await store.all(Book)
    assert book.title == "&lt;i&gt;Dune&lt;&#x2F;i&gt;"

    detail = await client.get(resp.headers["location"])
    assert "<i>Dune</i>" not in detail.text
    assert "&lt;i&gt;Dune&lt;&#x2F;i&gt;" in detail.text


async def test_book_detail_shows_genres_and_copies(client, store, author, genres):
    book = await store.add(
        Book(
            title="Dune",
            author_id=author.id,
            summary="s",
            isbn="1",
            genre_links=[BookGenre(genre_id=genres[0].id, position=0)],
        )
    )
    await store.add(BookInstance(book_id=book.id, imprint="Ace, 1990", status="Available"))
    resp = await client.get(f"/catalog/book/{book.id}")
    assert resp.status_code == 200
    assert "Science Fiction" in resp.text
    assert "Ace, 1990" in resp.text


async def test_book_detail_missing_is_404_not_empty_page(client):
    resp = await client.get("/catalog/book/4242")
    assert resp.status_code == 404
    assert "Book not found" in resp.text

    unparseable = await client.get("/catalog/book/not-an-id")
    assert unparseable.status_code == 404


async def test_delete_book_blocked_until_copies_removed(client, store, author):
    book = await store.add(Book(title="Dune", author_id=author.id, summary="s", isbn="1"))
    copy = await store.add(BookInstance(book_id=book.id, imprint="Ace, 1990"))

    resp = await client.post(f"/catalog/book/{book.id}/delete", data={"bookid": str(book.id)})
    assert resp.status_code == 200
    assert "Delete the following copies" in resp.text
    assert "Ace, 1990" in resp.text
    assert await store.get(Book, book.id) is not None

    resp = await client.post(
        f"/catalog/bookinstance/{copy.id}/delete", data={"bookinstanceid": str(copy.id)}
    )
    assert resp.status_code == 303

    resp = await client.post(f"/catalog/book/{book.id}/delete", data={"bookid": str(book.id)})
    assert resp.status_code == 303
    assert resp.headers["location"] == "/catalog/books"
    assert await store.get(Book, book.id) is None


async def test_delete_book_removes_genre_links(client, store, author, genres):
    book = await store.add(
        Book(
            title="Dune",
            author_id=author.id,
            summary="s",
            isbn="1",
            genre_links=[BookGenre(genre_id=genres[0].id, position=0)],
        )
    )
    resp = await client.post(f"/catalog/book/{book.id}/delete", data={"bookid": str(book.id)})
    assert resp.status_code == 303
    assert await store.count(BookGenre) == 0
    assert await store.count(Genre) == 3


async def test_update_form_preselects_genres(client, store, author, genres):
    book = await store.add(
        Book(
            title="Dune",
            author_id=author.id,
            summary="s",
            isbn="1",
            genre_links=[BookGenre(genre_id=genres[2].id, position=0)],
        )
    )
    resp = await client.get(f"/catalog/book/{book.id}/update")
    assert resp.status_code == 200
    assert f'value="{genres[2].id}" checked' in resp.text
    assert f'value="{genres[0].id}" checked' not in resp.text


async def test_update_form_for_missing_book_redirects(client):
    resp = await client.get("/catalog/book/31/update")
    assert resp.status_code == 303
    assert resp.headers["location"] == "/catalog/books"


async def test_update_book_replaces_genres_and_is_idempotent(client, store, author, genres):
    book = await store.add(
        Book(
            title="Dune",
            author_id=author.id,
            summary="s",
            isbn="1",
            genre_links=[
                BookGenre(genre_id=genres[0].id, position=0),
                BookGenre(genre_id=genres[1].id, position=1),
            ],
        )
    )
    data = book_form(author, title="Dune Messiah")
    data["genre"] = [str(genres[1].id), str(genres[2].id)]

    for _ in range(2):
        resp = await client.post(f"/catalog/book/{book.id}/update", data=data)
        assert resp.status_code == 303
        assert resp.headers["location"] == f"/catalog/book/{book.id}"

    [updated] = await store.all(Book)
    assert updated.id == book.id
    assert updated.title == "Dune Messiah"
    assert await _stored_genre_ids(store, book.id) == [genres[1].id, genres[2].id]


async def test_delete_form_for_missing_book_redirects(client):
    resp = await client.get("/catalog/book/4242/delete")
    assert resp.status_code == 303
    assert resp.headers["location"] == "/catalog/books"


async def test_delete_book_requires_matching_ids(client, store, author):
    book = await store.add(Book(title="Dune", author_id=author.id, summary="s", isbn="1"))
    resp = await client.post(
        f"/catalog/book/{book.id}/delete", data={"bookid": str(book.id + 1)}
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/catalog/books"
    assert await store.get(Book, book.id) is not None


async def test_delete_book_copy_added_after_check_keeps_book(
    client, store, author, monkeypatch
):
    book = await store.add(Book(title="Dune", author_id=author.id, summary="s", isbn="1"))
    await store.add(BookInstance(book_id=book.id, imprint="Ace, 1990"))

    async def reads_without_copies(session_factory, *reads):
        found, _copies = await gather_reads(session_factory, *reads)
        return found, []

    monkeypatch.setattr(book_router, "gather_reads", reads_without_copies)
    resp = await client.post(f"/catalog/book/{book.id}/delete", data={"bookid": str(book.id)})

    assert resp.status_code == 200
    assert "Delete the following copies" in resp.text
    assert "Ace, 1990" in resp.text
    assert await store.count(Book) == 1


async def test_update_missing_book_redirects_even_when_invalid(client):
    resp = await client.post("/catalog/book/31/update", data={"title": ""})
    assert resp.status_code == 303
    assert resp.headers["location"] == "/catalog/books"
