from datetime import date
from typing import Annotated, List

from pydantic import BaseModel, Field
from validation import Escaped, FormModel, OptionalDate, Trimmed, alphanumeric, required

from .shared import BookSummary, FormView, date_input


class AuthorForm(FormModel):
    first_name: Annotated[
        Trimmed,
        required("First name must not be empty."),
        Escaped,
        alphanumeric("First name has non-alphanumeric characters."),
    ]
    family_name: Annotated[
        Trimmed,
        required("Family name must not be empty."),
        Escaped,
        alphanumeric("Family name has non-alphanumeric characters."),
    ]
    date_of_birth: OptionalDate
    date_of_death: OptionalDate


class AuthorRead(BaseModel):
    id : int
    first_name : str
    family_name : str
    date_of_birth : date | None
    date_of_death : date | None
    name : str
    lifespan : str
    url : str

    class Config:
        from_attributes = True


class AuthorDraft(BaseModel):
    """Author as shown in the form: stored values or the last submission."""

    id : int | None = None
    first_name : str = ""
    family_name : str = ""
    date_of_birth : str = ""
    date_of_death : str = ""

    @classmethod
    def from_values(cls, values: dict, author_id: int | None = None) -> "AuthorDraft":
        return cls(
            id=author_id,
            first_name=values.get("first_name") or "",
            family_name=values.get("family_name") or "",
            date_of_birth=date_input(values.get("date_of_birth")),
            date_of_death=date_input(values.get("date_of_death")),
        )

    @classmethod
    def from_entity(cls, author) -> "AuthorDraft":
        return cls(
            id=author.id,
            first_name=author.first_name,
            family_name=author.family_name,
            date_of_birth=date_input(author.date_of_birth),
            date_of_death=date_input(author.date_of_death),
        )


class AuthorListView(BaseModel):
    author_list: List[AuthorRead] = Field(default_factory=list)

class AuthorDetailView(BaseModel):
    author: AuthorRead
    author_books: List[BookSummary] = Field(default_factory=list)

class AuthorFormView(FormView):
    author: AuthorDraft | None = None

class AuthorDeleteView(BaseModel):
    author: AuthorRead
    author_books: List[BookSummary] = Field(default_factory=list)
