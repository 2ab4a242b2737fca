from typing import Annotated, List

from models import BOOKINSTANCE_STATUSES, DEFAULT_BOOKINSTANCE_STATUS
from pydantic import BaseModel, Field
from validation import (
    Escaped,
    FormModel,
    OptionalDate,
    Trimmed,
    default,
    reference,
    required,
)

from .shared import BookBase, BookInstanceRow, FormView, date_input


class BookInstanceForm(FormModel):
    book: Annotated[
        int,
        reference("Book must be chosen from the list.", missing="Book must be specified."),
    ]
    imprint: Annotated[Trimmed, required("Imprint must be specified."), Escaped]
    status: Annotated[Trimmed, Escaped, default(DEFAULT_BOOKINSTANCE_STATUS)]
    due_back: OptionalDate


class BookInstanceRead(BookInstanceRow):
    book : BookBase


class BookInstanceDraft(BaseModel):
    id : int | None = None
    imprint : str = ""
    status : str = DEFAULT_BOOKINSTANCE_STATUS
    due_back : str = ""

    @classmethod
    def from_values(cls, values: dict, bookinstance_id: int | None = None) -> "BookInstanceDraft":
        return cls(
            id=bookinstance_id,
            imprint=values.get("imprint") or "",
            status=values.get("status") or DEFAULT_BOOKINSTANCE_STATUS,
            due_back=date_input(values.get("due_back")),
        )

    @classmethod
    def from_entity(cls, bookinstance) -> "BookInstanceDraft":
        return cls(
            id=bookinstance.id,
            imprint=bookinstance.imprint,
            status=bookinstance.status,
            due_back=date_input(bookinstance.due_back),
        )


class BookInstanceListView(BaseModel):
    bookinstance_list: List[BookInstanceRead] = Field(default_factory=list)

class BookInstanceDetailView(BaseModel):
    bookinstance: BookInstanceRead

class BookInstanceFormView(FormView):
    bookinstance: BookInstanceDraft | None = None
    book_list: List[BookBase] = Field(default_factory=list)
    selected_book: str | None = None
    statuses: List[str] = Field(default_factory=lambda: list(BOOKINSTANCE_STATUSES))

class BookInstanceDeleteView(BaseModel):
    bookinstance: BookInstanceRead
