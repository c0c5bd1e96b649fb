"""
MongoDB access for the AirCNC API.

The database handle is created once by `connect()` and handed to the app; every
helper below takes it explicitly so tests can pass an in-memory stand-in.
"""
import logging
import os
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote_plus

from bson import ObjectId
from bson.errors import InvalidId
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

from errors import MalformedId
from schemas import DeleteResult, InsertResult, UpdateResult

logger = logging.getLogger(__name__)

DATABASE_NAME = os.getenv("DATABASE_NAME", "aircncDB")
DB_HOST = os.getenv("DB_HOST", "cluster0.9fxhf2q.mongodb.net")

USERS = "users"
ROOMS = "rooms"
BOOKINGS = "bookings"


def build_database_url() -> Optional[str]:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    user, password = os.getenv("DB_USER"), os.getenv("DB_PASS")
    if user and password:
        return (
            f"mongodb+srv://{quote_plus(user)}:{quote_plus(password)}@{DB_HOST}/"
            "?retryWrites=true&w=majority&appName=Cluster0"
        )
    return None


def connect(url: Optional[str] = None, name: Optional[str] = None) -> Optional[Database]:
    """Return the configured database, or None when no connection string is set."""
    url = url or build_database_url()
    if not url:
        logger.warning("No database connection configured; storage routes will fail")
        return None
    client = MongoClient(url)
    return client[name or DATABASE_NAME]


def ping(db: Database) -> None:
    db.client.admin.command("ping")


def parse_object_id(value: str) -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise MalformedId()


def to_json(document: Any) -> Any:
    """Render ObjectIds (top level or nested) as hex strings."""
    return jsonable_encoder(document, custom_encoder={ObjectId: str})


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> InsertResult:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    # insert_one writes _id back into the dict it is given
    document = dict(data)
    result = db[collection_name].insert_one(document)
    return InsertResult(acknowledged=result.acknowledged, insertedId=str(result.inserted_id))


def get_documents(db: Database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    return to_json(list(db[collection_name].find(filter_dict or {})))


def find_document(db: Database, collection_name: str, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    document = db[collection_name].find_one(filter_dict)
    return to_json(document) if document is not None else None


def update_document(
    db: Database,
    collection_name: str,
    filter_dict: Dict[str, Any],
    changes: Dict[str, Any],
    upsert: bool = False,
) -> UpdateResult:
    result = db[collection_name].update_one(filter_dict, {"$set": changes}, upsert=upsert)
    upserted_id = result.upserted_id
    return UpdateResult(
        acknowledged=result.acknowledged,
        matchedCount=result.matched_count,
        modifiedCount=result.modified_count,
        upsertedCount=1 if upserted_id is not None else 0,
        upsertedId=str(upserted_id) if upserted_id is not None else None,
    )


def delete_document(db: Database, collection_name: str, filter_dict: Dict[str, Any]) -> DeleteResult:
    result = db[collection_name].delete_one(filter_dict)
    return DeleteResult(acknowledged=result.acknowledged, deletedCount=result.deleted_count)
