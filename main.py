import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from routers import author, book, bookinstance, catalog, genre
from helpers import redirect
from views import ErrorView, render

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

#from database import Base, sync_engine
#Base.metadata.create_all(bind=sync_engine) #see scripts/init_db.py

app = FastAPI(title="Local Library")

origins = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://127.0.0.1:5500,http://localhost:5500,"
        "http://127.0.0.1:8000,http://localhost:8000",
    ).split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_page(request: Request, exc: StarletteHTTPException):
    return _error_page(request, exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def server_error_page(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_page(request, 500, "Internal Server Error")


def _error_page(request: Request, status_code: int, message: str):
    view = ErrorView(status_code=status_code, message=message)
    return render(request, "error", view, title="Error", status_code=status_code)


@app.get("/")
async def home():
    return redirect("/catalog/")


app.include_router(catalog.router)
app.include_router(author.router)
app.include_router(genre.router)
app.include_router(book.router)
app.include_router(bookinstance.router)
