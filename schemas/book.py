from typing import Annotated, Iterable, List

from pydantic import BaseModel, BeforeValidator, Field
from validation import Escaped, FormModel, Trimmed, as_list, reference, required

from .shared import (
    AuthorBase,
    BookBase,
    BookInstanceRow,
    BookWithAuthor,
    FormView,
    GenreBase,
)

GenreChoice = Annotated[int | None, reference("Genre must be chosen from the list.")]


class BookForm(FormModel):
    title: Annotated[Trimmed, required("Title must not be empty."), Escaped]
    author: Annotated[
        int,
        reference(
            "Author must be chosen from the list.",
            missing="Author must not be empty.",
        ),
    ]
    summary: Annotated[Trimmed, required("Summary must not be empty."), Escaped]
    isbn: Annotated[Trimmed, required("ISBN must not be empty."), Escaped]
    genre: Annotated[List[GenreChoice], BeforeValidator(as_list)]


class BookRead(BookWithAuthor):
    summary : str
    isbn : str
    genres : List[GenreBase] = Field(default_factory=list)


class GenreOption(GenreBase):
    checked : bool = False


def genre_options(genres: Iterable, selected: Iterable) -> List[GenreOption]:
    """Mark the genres whose id is among ``selected`` (ids or submitted text)."""
    chosen = {str(value) for value in selected if value is not None}
    return [
        GenreOption(id=g.id, name=g.name, url=g.url, checked=str(g.id) in chosen)
        for g in genres
    ]


class BookDraft(BaseModel):
    id : int | None = None
    title : str = ""
    author : str = ""
    summary : str = ""
    isbn : str = ""
    genre : List[str] = Field(default_factory=list)

    @classmethod
    def from_values(cls, values: dict, book_id: int | None = None) -> "BookDraft":
        author = values.get("author")
        return cls(
            id=book_id,
            title=values.get("title") or "",
            author="" if author is None else str(author),
            summary=values.get("summary") or "",
            isbn=values.get("isbn") or "",
            genre=[str(g) for g in as_list(values.get("genre")) if g is not None],
        )

    @classmethod
    def from_entity(cls, book) -> "BookDraft":
        return cls(
            id=book.id,
            title=book.title,
            author=str(book.author_id),
            summary=book.summary,
            isbn=book.isbn,
            genre=[str(gid) for gid in book.genre_ids],
        )


class BookListView(BaseModel):
    book_list: List[BookWithAuthor] = Field(default_factory=list)

class BookDetailView(BaseModel):
    book: BookRead
    book_instances: List[BookInstanceRow] = Field(default_factory=list)

class BookFormView(FormView):
    book: BookDraft | None = None
    authors: List[AuthorBase] = Field(default_factory=list)
    genres: List[GenreOption] = Field(default_factory=list)

class BookDeleteView(BaseModel):
    book: BookBase
    book_instances: List[BookInstanceRow] = Field(default_factory=list)
