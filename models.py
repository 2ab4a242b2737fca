from datetime import date

from database import Base
from sqlalchemy import Date, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

BOOKINSTANCE_STATUSES = ("Available", "Maintenance", "Loaned", "Reserved")
DEFAULT_BOOKINSTANCE_STATUS = "Maintenance"


class Author(Base):
    __tablename__ = "authors"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    family_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    date_of_death: Mapped[date | None] = mapped_column(Date)

    books: Mapped[list["Book"]] = relationship(back_populates="author")

    @property
    def name(self) -> str:
        if self.first_name and self.family_name:
            return f"{self.family_name}, {self.first_name}"
        return ""

    @property
    def lifespan(self) -> str:
        birth = self.date_of_birth.isoformat() if self.date_of_birth else ""
        death = self.date_of_death.isoformat() if self.date_of_death else ""
        return f"{birth} - {death}"

    @property
    def url(self) -> str:
        return f"/catalog/author/{self.id}"


class Genre(Base):
    __tablename__ = "genres"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    @property
    def url(self) -> str:
        return f"/catalog/genre/{self.id}"


# case-insensitive uniqueness lives in the store; the controller check only
# decides where to redirect
Index("uq_genres_name_lower", func.lower(Genre.name), unique=True)


class BookGenre(Base):
    __tablename__ = "book_genre"

    book_id: Mapped[int] = mapped_column(
        ForeignKey("books.id", ondelete="CASCADE"), primary_key=True
    )
    genre_id: Mapped[int] = mapped_column(
        ForeignKey("genres.id", ondelete="RESTRICT"), primary_key=True, index=True
    )
    position: Mapped[int] = mapped_column(nullable=False, default=0)

    genre: Mapped["Genre"] = relationship()


class Book(Base):
    __tablename__ = "books"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(), nullable=False, index=True)
    author_id: Mapped[int] = mapped_column(
        ForeignKey("authors.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    isbn: Mapped[str] = mapped_column(String(), nullable=False)

    author: Mapped["Author"] = relationship(back_populates="books")
    genre_links: Mapped[list["BookGenre"]] = relationship(
        order_by=BookGenre.position,
        cascade="all, delete-orphan",
    )
    instances: Mapped[list["BookInstance"]] = relationship(back_populates="book")

    @property
    def genres(self) -> list["Genre"]:
        return [link.genre for link in self.genre_links]

    @property
    def genre_ids(self) -> list[int]:
        return [link.genre_id for link in self.genre_links]

    @property
    def url(self) -> str:
        return f"/catalog/book/{self.id}"


class BookInstance(Base):
    __tablename__ = "bookinstances"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    book_id: Mapped[int] = mapped_column(
        ForeignKey("books.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    imprint: Mapped[str] = mapped_column(String(), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DEFAULT_BOOKINSTANCE_STATUS, index=True
    )
    due_back: Mapped[date | None] = mapped_column(Date)

    book: Mapped["Book"] = relationship(back_populates="instances")

    @property
    def due_back_formatted(self) -> str:
        if self.due_back is None:
            return ""
        return f"{self.due_back:%b} {self.due_back.day}, {self.due_back.year}"

    @property
    def url(self) -> str:
        return f"/catalog/bookinstance/{self.id}"
