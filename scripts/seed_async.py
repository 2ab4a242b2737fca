"""
Async seeding script that fills a running catalog through its HTML forms.

Usage:
    python scripts/seed_async.py --authors 20 --books 50 --copies 3 --concurrency 10 --base-url http://localhost:8000

The server must be running and reachable at the provided base URL.
"""

import argparse
import asyncio
import os
import random
import string
import uuid

import httpx
from dotenv import load_dotenv

load_dotenv()

DEFAULT_BASE_URL = os.getenv("SEED_BASE_URL", "http://localhost:8000")

GENRES = ["Fantasy", "Science Fiction", "French Poetry", "Mystery", "Biography"]
STATUSES = ["Available", "Maintenance", "Loaned", "Reserved"]


def _isbn() -> str:
    # Generate a 13-digit ISBN-like string
    return f"978{uuid.uuid4().int % 10**10:010d}"


def _name() -> str:
    return random.choice(string.ascii_uppercase) + uuid.uuid4().hex[:7]


async def _submit(client: httpx.AsyncClient, path: str, data: dict) -> int:
    """POST a create form and return the id from the redirect location."""
    resp = await client.post(path, data=data)
    if resp.status_code != 303:
        raise RuntimeError(f"{path} rejected the submission: {resp.status_code}")
    return int(resp.headers["location"].rstrip("/").rsplit("/", 1)[1])


async def create_author(client: httpx.AsyncClient) -> int:
    return await _submit(
        client,
        "/catalog/author/create",
        {"first_name": _name(), "family_name": _name(), "date_of_birth": "1950-01-01"},
    )


async def create_genre(client: httpx.AsyncClient, name: str) -> int:
    return await _submit(client, "/catalog/genre/create", {"name": name})


async def create_book(
    client: httpx.AsyncClient, title: str, author_id: int, genre_ids: list[int]
) -> int:
    payload = {
        "title": title,
        "author": str(author_id),
        "summary": "seeded via scripts/seed_async.py",
        "isbn": _isbn(),
        "genre": [str(gid) for gid in genre_ids],
    }
    return await _submit(client, "/catalog/book/create", payload)


async def create_copy(client: httpx.AsyncClient, book_id: int) -> int:
    payload = {
        "book": str(book_id),
        "imprint": f"Seed Press, {random.randint(1950, 2024)}",
        "status": random.choice(STATUSES),
        "due_back": "",
    }
    return await _submit(client, "/catalog/bookinstance/create", payload)


async def seed_book(
    client: httpx.AsyncClient,
    idx: int,
    author_ids: list[int],
    genre_ids: list[int],
    copies: int,
    max_genres: int,
    semaphore: asyncio.Semaphore,
) -> int:
    """Create one book and its copies; returns the number of copies."""
    async with semaphore:
        sample_size = random.randint(0, min(max_genres, len(genre_ids)))
        book_id = await create_book(
            client,
            title=f"Seed Book {idx}-{uuid.uuid4().hex[:6]}",
            author_id=random.choice(author_ids),
            genre_ids=random.sample(genre_ids, k=sample_size),
        )
        copy_count = random.randint(0, copies)
        for _ in range(copy_count):
            await create_copy(client, book_id)
        return copy_count


async def seed(
    base_url: str,
    authors: int,
    books: int,
    copies: int,
    max_genres: int,
    concurrency: int,
):
    async with httpx.AsyncClient(
        base_url=base_url, timeout=30.0, follow_redirects=False
    ) as client:
        genre_ids = [await create_genre(client, name) for name in GENRES]
        author_ids = [await create_author(client) for _ in range(authors)]

        if not author_ids:
            print("No authors created; skipping book creation.")
            return

        semaphore = asyncio.Semaphore(max(concurrency, 1))
        tasks = [
            seed_book(client, idx, author_ids, genre_ids, copies, max_genres, semaphore)
            for idx in range(books)
        ]
        copy_counts = await asyncio.gather(*tasks)

    print(
        f"Seeded {len(author_ids)} authors, {len(genre_ids)} genres, "
        f"{len(copy_counts)} books and {sum(copy_counts)} copies to {base_url}"
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Async seeder for the Local Library")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help="Server base URL")
    parser.add_argument("--authors", type=int, default=10, help="Number of authors to create")
    parser.add_argument("--books", type=int, default=20, help="Number of books to create")
    parser.add_argument(
        "--copies", type=int, default=3, help="Maximum copies to create per book"
    )
    parser.add_argument(
        "--max-genres-per-book",
        type=int,
        default=2,
        help="Maximum genres to attach to a book",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=10,
        help="Max concurrent requests for book creation",
    )
    return parser.parse_args()


def main():
    args = parse_args()
    asyncio.run(
        seed(
            base_url=args.base_url,
            authors=args.authors,
            books=args.books,
            copies=args.copies,
            max_genres=args.max_genres_per_book,
            concurrency=args.concurrency,
        )
    )


if __name__ == "__main__":
    main()
