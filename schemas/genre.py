from typing import Annotated, List

from pydantic import BaseModel, Field
from validation import Escaped, FormModel, Trimmed, required

from .shared import BookSummary, FormView, GenreBase


class GenreForm(FormModel):
    name: Annotated[
        Trimmed,
        required("Genre name must contain at least 3 characters.", min_length=3),
        Escaped,
    ]


class GenreRead(GenreBase):
    pass


class GenreDraft(BaseModel):
    id : int | None = None
    name : str = ""


class GenreListView(BaseModel):
    genre_list: List[GenreRead] = Field(default_factory=list)

class GenreDetailView(BaseModel):
    genre: GenreRead
    genre_books: List[BookSummary] = Field(default_factory=list)

class GenreFormView(FormView):
    genre: GenreDraft | None = None

class GenreDeleteView(BaseModel):
    genre: GenreRead
    genre_books: List[BookSummary] = Field(default_factory=list)
