import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from librarydesk import auth
from librarydesk.auth import SessionStore
from librarydesk.catalog import Catalog
from librarydesk.config import settings
from librarydesk.database import get_db_connection
from librarydesk.errors import LibraryError, NotAuthenticated
from librarydesk.ledger import Ledger

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


# --- Models ---
class LoginModel(BaseModel):
    username: str
    password: str

class UserModel(BaseModel):
    id: int
    username: str

class LoginResponse(BaseModel):
    success: bool = True
    user: UserModel

class MeResponse(BaseModel):
    authenticated: bool
    user: Optional[UserModel] = None

class SuccessResponse(BaseModel):
    success: bool = True

class CreatedResponse(SuccessResponse):
    id: int

class ReturnResponse(SuccessResponse):
    fine: int

class StatsModel(BaseModel):
    totalBooks: int
    totalStudents: int
    issuedBooks: int

class BookModel(BaseModel):
    id: int
    title: str
    author: str
    quantity: int
    available: int

class BookInModel(BaseModel):
    title: str
    author: str
    quantity: int

class StudentModel(BaseModel):
    id: int
    name: str
    department: Optional[str] = None
    phone: Optional[str] = None

class StudentInModel(BaseModel):
    name: str
    department: Optional[str] = None
    phone: Optional[str] = None

class IssueInModel(BaseModel):
    student_id: int
    book_id: int
    issue_date: str

class ActiveIssueModel(BaseModel):
    id: int
    student_id: int
    book_id: int
    issue_date: str
    return_date: Optional[str] = None
    fine: int
    status: str
    student_name: str
    book_title: str

class ReturnInModel(BaseModel):
    issue_id: int
    return_date: str


# --- Dependencies ---
def get_catalog(request: Request) -> Catalog:
    return request.app.state.catalog

def get_ledger(request: Request) -> Ledger:
    return request.app.state.ledger

def get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions

def require_admin(request: Request, sessions: SessionStore = Depends(get_sessions)) -> int:
    """Dependency rejecting requests without a live session."""
    user_id = sessions.get(request.cookies.get(settings.session_cookie_name))
    if user_id is None:
        raise NotAuthenticated()
    return user_id


router = APIRouter(prefix="/api")
protected = APIRouter(prefix="/api", dependencies=[Depends(require_admin)])


# --- Auth ---
@router.post("/login", response_model=LoginResponse)
def login(payload: LoginModel, request: Request, response: Response,
          sessions: SessionStore = Depends(get_sessions)):
    user = auth.authenticate(payload.username, payload.password, request.app.state.db_file)
    if user is None:
        raise NotAuthenticated("Invalid credentials")
    token = sessions.create(user["id"])
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=sessions.ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )
    logger.info(f"Admin {user['username']!r} logged in")
    return LoginResponse(user=UserModel(**user))

@router.post("/logout", response_model=SuccessResponse)
def logout(request: Request, response: Response, sessions: SessionStore = Depends(get_sessions)):
    sessions.destroy(request.cookies.get(settings.session_cookie_name))
    response.delete_cookie(settings.session_cookie_name)
    return SuccessResponse()

@router.get("/me", response_model=MeResponse, response_model_exclude_none=True)
def me(request: Request, sessions: SessionStore = Depends(get_sessions)):
    user_id = sessions.get(request.cookies.get(settings.session_cookie_name))
    user = auth.get_admin(user_id, request.app.state.db_file) if user_id is not None else None
    if user is None:
        return MeResponse(authenticated=False)
    return MeResponse(authenticated=True, user=UserModel(**user))


# --- Dashboard ---
@protected.get("/stats", response_model=StatsModel)
def get_stats(ledger: Ledger = Depends(get_ledger)):
    """Copies owned, students registered and copies on loan."""
    stats = ledger.get_statistics()
    return StatsModel(
        totalBooks=stats["total_books"],
        totalStudents=stats["total_students"],
        issuedBooks=stats["issued_books"],
    )


# --- Books ---
@protected.get("/books", response_model=List[BookModel])
def list_books(catalog: Catalog = Depends(get_catalog)):
    return [BookModel(**b.to_dict()) for b in catalog.list_books()]

@protected.post("/books", response_model=CreatedResponse)
def add_book(payload: BookInModel, catalog: Catalog = Depends(get_catalog)):
    book = catalog.add_book(payload.title, payload.author, payload.quantity)
    return CreatedResponse(id=book.id)

@protected.put("/books/{book_id}", response_model=SuccessResponse)
def update_book(book_id: int, payload: BookInModel, catalog: Catalog = Depends(get_catalog)):
    catalog.update_book(book_id, payload.title, payload.author, payload.quantity)
    return SuccessResponse()

@protected.delete("/books/{book_id}", response_model=SuccessResponse)
def delete_book(book_id: int, catalog: Catalog = Depends(get_catalog)):
    catalog.remove_book(book_id)
    return SuccessResponse()


# --- Students ---
@protected.get("/students", response_model=List[StudentModel])
def list_students(catalog: Catalog = Depends(get_catalog)):
    return [StudentModel(**s.to_dict()) for s in catalog.list_students()]

@protected.post("/students", response_model=CreatedResponse)
def add_student(payload: StudentInModel, catalog: Catalog = Depends(get_catalog)):
    student = catalog.add_student(payload.name, payload.department, payload.phone)
    return CreatedResponse(id=student.id)


# --- Issue / Return ---
@protected.post("/issue", response_model=CreatedResponse)
def issue_book(payload: IssueInModel, ledger: Ledger = Depends(get_ledger)):
    issue_id = ledger.issue_book(payload.student_id, payload.book_id, payload.issue_date)
    return CreatedResponse(id=issue_id)

@protected.get("/issues", response_model=List[ActiveIssueModel])
def list_active_issues(ledger: Ledger = Depends(get_ledger)):
    return [ActiveIssueModel(**i.to_dict()) for i in ledger.active_issues()]

@protected.post("/return", response_model=ReturnResponse)
def return_book(payload: ReturnInModel, ledger: Ledger = Depends(get_ledger)):
    fine = ledger.return_book(payload.issue_id, payload.return_date)
    return ReturnResponse(fine=fine)


# --- Application ---
async def library_error_handler(request: Request, exc: LibraryError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


def create_app(db_file: Optional[str] = None) -> FastAPI:
    """Build the API application bound to one database file."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.db_file = db_file
        app.state.catalog = Catalog(db_file)
        app.state.ledger = Ledger(db_file)
        app.state.sessions = SessionStore()
        logger.info(f"{settings.app_name} ready (database: {db_file or settings.database_file})")
        yield

    app = FastAPI(title=settings.app_name, version=settings.app_version, debug=settings.debug, lifespan=lifespan)

    # Compress responses larger than 1KB
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_exception_handler(LibraryError, library_error_handler)

    @app.get("/health")
    def health(request: Request):
        """Lightweight health check with a quick database round trip."""
        db_ok = True
        try:
            conn = get_db_connection(request.app.state.db_file)
            try:
                conn.execute("SELECT 1")
            finally:
                conn.close()
        except Exception as e:
            logger.error(f"Health check database error: {e}")
            db_ok = False
        return {
            "status": "healthy" if db_ok else "degraded",
            "db": db_ok,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    app.include_router(router)
    app.include_router(protected)
    return app


app = create_app()
