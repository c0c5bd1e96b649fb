"""
Wire schemas for the AirCNC API

Room, user and booking documents are stored as the client sends them, so the
collections themselves carry no enforced schema. The models below describe the
request bodies the API validates and the write results it returns. Result
fields are camelCase to match what the web client reads.
"""
from pydantic import BaseModel, Field
from typing import Optional


class TokenResponse(BaseModel):
    token: str = Field(..., description="HS256 JWT valid for three hours")


class StatusUpdate(BaseModel):
    """
    Body of PATCH /rooms/status/{id}
    The value is written to the room's `booked` field.
    """
    status: bool = Field(..., description="New booked flag for the room")


class InsertResult(BaseModel):
    acknowledged: bool = True
    insertedId: str = Field(..., description="Hex id assigned by the database")


class UpdateResult(BaseModel):
    acknowledged: bool = True
    matchedCount: int = 0
    modifiedCount: int = 0
    upsertedCount: int = 0
    upsertedId: Optional[str] = Field(None, description="Hex id when the update inserted a document")


class DeleteResult(BaseModel):
    acknowledged: bool = True
    deletedCount: int = 0
