from datetime import date

from pydantic import BaseModel
from validation import FieldError


def date_input(value) -> str:
    """Value for an ``<input type="date">``: ISO text, or what was submitted."""
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


class AuthorBase(BaseModel):
    id : int
    name : str
    url : str

    class Config:
        from_attributes = True

class GenreBase(BaseModel):
    id : int
    name : str
    url : str

    class Config:
        from_attributes = True

class BookBase(BaseModel):
    id : int
    title : str
    url : str

    class Config:
        from_attributes = True

class BookSummary(BookBase):
    summary : str

class BookWithAuthor(BookBase):
    author : AuthorBase


class BookInstanceRow(BaseModel):
    id : int
    imprint : str
    status : str
    due_back : date | None
    due_back_formatted : str
    url : str

    class Config:
        from_attributes = True


class FormView(BaseModel):
    errors: list[FieldError] | None = None
