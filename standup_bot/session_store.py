"""
MongoDB storage for standup sessions and participant responses.
Every mutation is a single-document atomic update guarded by the record's current state.
"""

from datetime import datetime
from typing import List, Optional, Sequence

import pymongo
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from .models import Participant, ResponseRecord, ResponseStatus, Session
from .utils import DuplicateRecordError, InvalidTransitionError, StoreWriteError, logger


def _object_id(value):
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError) as e:
        raise StoreWriteError(f"Invalid record id: {value!r}") from e


class SessionStore:
    """Service class for standup persistence."""

    def __init__(self, uri=None, db_name=None, client=None, now=datetime.now):
        """
        Initialize the MongoDB connection.

        Args:
            uri (str): MongoDB connection URI
            db_name (str): Database name
            client: an already constructed MongoClient, used instead of ``uri``
            now: clock used for created_at and rollup timestamps
        """
        self.uri = uri or "mongodb://localhost:27017/"
        self.db_name = db_name or "standup_bot"
        self.now = now
        self.client = client
        self.db = None
        self.sessions = None
        self.responses = None
        self.connect()

    def connect(self):
        try:
            if self.client is None:
                logger.info(f"🔌 Connecting to MongoDB: {self.db_name}")
                self.client = pymongo.MongoClient(
                    self.uri,
                    serverSelectionTimeoutMS=10000,
                    connectTimeoutMS=15000,
                    socketTimeoutMS=20000,
                    retryWrites=True,
                )
                self.client.admin.command('ping')

            self.db = self.client[self.db_name]
            self.sessions = self.db["sessions"]
            self.responses = self.db["responses"]
            self.ensure_indexes()
            logger.info("✅ Connected to MongoDB")
        except PyMongoError as e:
            logger.error("❌ MongoDB connection error", e)
            raise StoreWriteError(f"Could not connect to MongoDB: {e}") from e

    def ensure_indexes(self):
        self.sessions.create_index("date", unique=True)
        self.responses.create_index(
            [("session_id", pymongo.ASCENDING), ("participant_id", pymongo.ASCENDING)],
            unique=True,
        )
        self.responses.create_index(
            [("participant_id", pymongo.ASCENDING), ("status", pymongo.ASCENDING), ("created_at", pymongo.DESCENDING)]
        )

    def ping(self) -> bool:
        try:
            self.client.admin.command('ping')
            return True
        except PyMongoError as e:
            logger.error("❌ MongoDB ping failed", e)
            return False

    # Sessions

    def get_or_create_session(self, date: str) -> Session:
        """Return the session for ``date``, creating it if none exists yet."""
        try:
            doc = self.sessions.find_one_and_update(
                {"date": date},
                {"$setOnInsert": {"created_at": self.now(), "rollup_published_at": None}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # Lost a concurrent upsert race; the winner's session is already there.
            session = self.get_session_by_date(date)
            if session is None:
                raise StoreWriteError(f"Session for {date} vanished after creation")
            return session
        except PyMongoError as e:
            raise StoreWriteError(f"Could not create session for {date}: {e}") from e

        if doc is None:
            raise StoreWriteError(f"Session for {date} vanished after creation")
        return Session.from_document(doc)

    def get_session(self, session_id) -> Optional[Session]:
        try:
            doc = self.sessions.find_one({"_id": _object_id(session_id)})
        except PyMongoError as e:
            raise StoreWriteError(f"Could not load session {session_id}: {e}") from e
        return Session.from_document(doc) if doc else None

    def get_session_by_date(self, date: str) -> Optional[Session]:
        try:
            doc = self.sessions.find_one({"date": date})
        except PyMongoError as e:
            raise StoreWriteError(f"Could not load session for {date}: {e}") from e
        return Session.from_document(doc) if doc else None

    def claim_rollup(self, session_id) -> bool:
        """Mark the session's rollup as published. Only the first caller gets True."""
        try:
            doc = self.sessions.find_one_and_update(
                {"_id": _object_id(session_id), "rollup_published_at": None},
                {"$set": {"rollup_published_at": self.now()}},
            )
        except PyMongoError as e:
            raise StoreWriteError(f"Could not claim rollup for {session_id}: {e}") from e
        return doc is not None

    def list_unpublished_sessions(self) -> List[Session]:
        try:
            docs = self.sessions.find({"rollup_published_at": None}).sort("created_at", pymongo.ASCENDING)
            return [Session.from_document(doc) for doc in docs]
        except PyMongoError as e:
            raise StoreWriteError(f"Could not list sessions awaiting rollup: {e}") from e

    # Response records

    def create_response_record(self, session_id, participant: Participant, questions: Sequence[str]) -> ResponseRecord:
        doc = {
            "session_id": _object_id(session_id),
            "participant_id": participant.id,
            "display_name": participant.display_name,
            "questions": list(questions),
            "answers": [],
            "status": ResponseStatus.PENDING.value,
            "created_at": self.now(),
        }
        try:
            result = self.responses.insert_one(doc)
        except DuplicateKeyError as e:
            raise DuplicateRecordError(
                f"{participant.display_name} already has a response record for session {session_id}"
            ) from e
        except PyMongoError as e:
            raise StoreWriteError(f"Could not create response record for {participant.display_name}: {e}") from e

        doc["_id"] = result.inserted_id
        return ResponseRecord.from_document(doc)

    def get_record(self, record_id) -> Optional[ResponseRecord]:
        try:
            doc = self.responses.find_one({"_id": _object_id(record_id)})
        except PyMongoError as e:
            raise StoreWriteError(f"Could not load response record {record_id}: {e}") from e
        return ResponseRecord.from_document(doc) if doc else None

    def get_active_pending_record(self, participant_id: str) -> Optional[ResponseRecord]:
        """Most recently created pending record for the participant, across sessions."""
        try:
            cursor = self.responses.find(
                {"participant_id": participant_id, "status": ResponseStatus.PENDING.value}
            ).sort([("created_at", pymongo.DESCENDING), ("_id", pymongo.DESCENDING)]).limit(1)
            doc = next(iter(cursor), None)
        except PyMongoError as e:
            raise StoreWriteError(f"Could not look up pending record for {participant_id}: {e}") from e
        return ResponseRecord.from_document(doc) if doc else None

    def append_answer(self, record_id, text: str) -> ResponseRecord:
        """
        Append one answer to a pending record.

        The update only matches while the record is pending and still has an
        unanswered question, so it cannot interleave with a status change.
        """
        record = self.get_record(record_id)
        if record is None:
            raise InvalidTransitionError(f"Response record {record_id} does not exist")
        if not record.questions:
            raise InvalidTransitionError(f"Response record {record_id} has no questions to answer")

        last_slot = f"answers.{len(record.questions) - 1}"
        try:
            doc = self.responses.find_one_and_update(
                {"_id": record.id, "status": ResponseStatus.PENDING.value, last_slot: {"$exists": False}},
                {"$push": {"answers": text}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise StoreWriteError(f"Could not save answer for record {record_id}: {e}") from e

        if doc is None:
            raise InvalidTransitionError(f"Response record {record_id} is closed or already fully answered")
        return ResponseRecord.from_document(doc)

    def set_status(self, record_id, status: ResponseStatus) -> bool:
        """
        Move a pending record into a terminal status.

        Returns False when the record was already terminal, leaving it untouched.
        Marking a record answered also requires every question to have an answer.
        """
        status = ResponseStatus(status)
        if not ResponseStatus.PENDING.can_transition_to(status):
            raise InvalidTransitionError(f"Cannot move a record to {status.value}")

        query = {"_id": _object_id(record_id), "status": ResponseStatus.PENDING.value}
        if status is ResponseStatus.ANSWERED:
            record = self.get_record(record_id)
            if record is None:
                raise InvalidTransitionError(f"Response record {record_id} does not exist")
            if len(record.answers) != len(record.questions):
                raise InvalidTransitionError(
                    f"Record {record_id} has {len(record.answers)} of {len(record.questions)} answers"
                )
            query["answers"] = {"$size": len(record.questions)}

        try:
            result = self.responses.update_one(query, {"$set": {"status": status.value}})
        except PyMongoError as e:
            raise StoreWriteError(f"Could not set status {status.value} on record {record_id}: {e}") from e
        return result.modified_count == 1

    def list_non_terminal(self, session_id) -> List[ResponseRecord]:
        """Records still pending or already skipped, in creation order."""
        try:
            docs = self.responses.find({
                "session_id": _object_id(session_id),
                "status": {"$in": [ResponseStatus.PENDING.value, ResponseStatus.SKIPPED.value]},
            }).sort([("created_at", pymongo.ASCENDING), ("_id", pymongo.ASCENDING)])
            return [ResponseRecord.from_document(doc) for doc in docs]
        except PyMongoError as e:
            raise StoreWriteError(f"Could not list open records for session {session_id}: {e}") from e

    def list_records(self, session_id) -> List[ResponseRecord]:
        try:
            docs = self.responses.find({"session_id": _object_id(session_id)}).sort(
                [("created_at", pymongo.ASCENDING), ("_id", pymongo.ASCENDING)]
            )
            return [ResponseRecord.from_document(doc) for doc in docs]
        except PyMongoError as e:
            raise StoreWriteError(f"Could not list records for session {session_id}: {e}") from e
