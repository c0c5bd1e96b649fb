import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError

import database
from auth import create_token, ensure_owner, verify_jwt
from database import BOOKINGS, ROOMS, USERS, parse_object_id
from errors import DatabaseNotConfigured, register_error_handlers
from schemas import DeleteResult, InsertResult, StatusUpdate, TokenResponse, UpdateResult


def resolve_log_level(name: Optional[str]) -> str:
    level = (name or "INFO").upper()
    if not isinstance(logging.getLevelName(level), int):
        return "INFO"
    return level


logging.basicConfig(
    level=resolve_log_level(os.getenv("LOG_LEVEL")),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("aircnc")
access_logger = logging.getLogger("aircnc.access")

router = APIRouter()


def get_db(request: Request) -> Database:
    db = request.app.state.db
    if db is None:
        raise DatabaseNotConfigured()
    return db


@router.get("/", response_class=PlainTextResponse)
def root():
    return "AirCNC Server is running.."


@router.post("/jwt", response_model=TokenResponse)
def issue_token(payload: Dict[str, Any] = Body(...)):
    return {"token": create_token(payload)}


# ------- Users -------

@router.put("/users/{email}", response_model=UpdateResult)
def save_user(email: str, user: Dict[str, Any] = Body(...), db: Database = Depends(get_db)):
    # saved on every login/signup; $set keeps fields the client did not resend
    changes = {**user, "email": email}
    return database.update_document(db, USERS, {"email": email}, changes, upsert=True)


@router.get("/users/{email}")
def get_user(email: str, db: Database = Depends(get_db)):
    return database.find_document(db, USERS, {"email": email})


# ------- Rooms -------

@router.post("/rooms", response_model=InsertResult)
def create_room(room: Dict[str, Any] = Body(...), db: Database = Depends(get_db)):
    return database.create_document(db, ROOMS, room)


@router.get("/room/{room_id}")
def get_room(room_id: str, db: Database = Depends(get_db)):
    return database.find_document(db, ROOMS, {"_id": parse_object_id(room_id)})


@router.get("/rooms/{email}")
def host_rooms(email: str, decoded: Dict[str, Any] = Depends(verify_jwt), db: Database = Depends(get_db)):
    ensure_owner(decoded, email)
    return database.get_documents(db, ROOMS, {"host.email": email})


@router.get("/rooms")
def list_rooms(db: Database = Depends(get_db)):
    return database.get_documents(db, ROOMS)


@router.delete("/rooms/{room_id}", response_model=DeleteResult)
def delete_room(room_id: str, db: Database = Depends(get_db)):
    return database.delete_document(db, ROOMS, {"_id": parse_object_id(room_id)})


@router.patch("/rooms/status/{room_id}", response_model=UpdateResult)
def update_room_status(room_id: str, update: StatusUpdate, db: Database = Depends(get_db)):
    return database.update_document(db, ROOMS, {"_id": parse_object_id(room_id)}, {"booked": update.status})


# ------- Bookings -------

@router.post("/bookings", response_model=InsertResult)
def create_booking(booking: Dict[str, Any] = Body(...), db: Database = Depends(get_db)):
    return database.create_document(db, BOOKINGS, booking)


@router.get("/bookings")
def guest_bookings(email: Optional[str] = None, db: Database = Depends(get_db)) -> List[Dict[str, Any]]:
    if not email:
        return []
    return database.get_documents(db, BOOKINGS, {"guest.email": email})


@router.get("/bookings/host")
def host_bookings(email: Optional[str] = None, db: Database = Depends(get_db)) -> List[Dict[str, Any]]:
    if not email:
        return []
    # host is stored as the host's email; older bookings embed {"email": ...}
    query = {"$or": [{"host": email}, {"host.email": email}]}
    return database.get_documents(db, BOOKINGS, query)


@router.delete("/bookings/{booking_id}", response_model=DeleteResult)
def delete_booking(booking_id: str, db: Database = Depends(get_db)):
    return database.delete_document(db, BOOKINGS, {"_id": parse_object_id(booking_id)})


@router.get("/test")
def test_database(request: Request):
    db = request.app.state.db
    response = {
        "backend": "Running",
        "database": "Not Available",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
    }
    if db is None:
        return response
    response["database"] = "Available"
    response["database_name"] = db.name
    try:
        response["collections"] = db.list_collection_names()[:10]
        response["connection_status"] = "Connected"
        response["database"] = "Connected & Working"
    except PyMongoError as e:
        response["database"] = f"Connected but Error: {str(e)[:50]}"
    return response


# ------- App -------

@asynccontextmanager
async def lifespan(app: FastAPI):
    db = app.state.db
    if db is not None:
        try:
            database.ping(db)
            logger.info("Pinged your deployment. You successfully connected to MongoDB!")
        except PyMongoError as e:
            logger.error("MongoDB ping failed: %s", e)
    yield


async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        # the catch-all handler answers 500 outside this middleware
        log_access(request, 500, start)
        raise
    log_access(request, response.status_code, start)
    return response


def log_access(request: Request, status: int, start: float) -> None:
    duration_ms = (time.perf_counter() - start) * 1000
    if status >= 500:
        level = logging.ERROR
    elif status >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO
    access_logger.log(level, "%s %s %d %.1fms", request.method, request.url.path, status, duration_ms)


def create_app(db: Optional[Database] = None) -> FastAPI:
    app = FastAPI(title="AirCNC API", lifespan=lifespan)
    app.state.db = db if db is not None else database.connect()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)
    register_error_handlers(app)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 5000))
    logger.info("AirCNC is running on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port)
