"""
backend/oddscron/database.py

Purpose:
    MongoDB connection bootstrap for the odds cache and worker state.
    The connection settings arrive as a base64-encoded (or raw) JSON
    credential; when it is missing or unusable the store stays disabled and
    the odds features report themselves as unavailable instead of crashing.

Dependencies:
    - motor.motor_asyncio
    - pymongo
    - oddscron.config
"""

import base64
import binascii
import json
import logging
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import OperationFailure, PyMongoError

from oddscron.config import Settings, settings

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None

logger = logging.getLogger("oddscron.database")


class CredentialError(ValueError):
    """Raised when the store credential is present but cannot be used."""


def decode_credential(raw: str) -> dict[str, Any] | None:
    """Decode a base64-or-raw JSON credential.

    Returns None when nothing is configured. The base64 form wins when its
    decoded text looks like a JSON object; otherwise the raw value is used
    as-is if it is a JSON object itself.
    """
    if not raw or not raw.strip():
        return None

    json_text = ""
    try:
        decoded = base64.b64decode(raw.strip(), validate=False).decode("utf-8")
        if decoded.strip().startswith("{"):
            json_text = decoded
    except (binascii.Error, UnicodeDecodeError, ValueError):
        pass  # Not base64; fall through to raw JSON

    if not json_text and raw.strip().startswith("{"):
        json_text = raw

    if not json_text:
        raise CredentialError("credential present but not valid base64/JSON")

    try:
        payload = json.loads(json_text)
    except json.JSONDecodeError as exc:
        raise CredentialError(f"credential JSON is malformed: {exc}") from exc
    if not isinstance(payload, dict):
        raise CredentialError("credential JSON must be an object")
    return payload


def resolve_connection(cfg: Settings) -> tuple[str, str] | None:
    """Return (uri, database) from the credential or MONGO_URI, else None."""
    credential = decode_credential(cfg.FIREBASE_SERVICE_ACCOUNT_BASE64)
    if credential is not None:
        uri = str(credential.get("uri") or credential.get("mongo_uri") or "").strip()
        if not uri:
            raise CredentialError("credential JSON has no 'uri'")
        database = str(credential.get("database") or credential.get("db") or cfg.MONGO_DB)
        return uri, database
    if cfg.MONGO_URI:
        return cfg.MONGO_URI, cfg.MONGO_DB
    return None


async def connect_db(cfg: Settings | None = None) -> bool:
    """Open the store. Returns False (store disabled) instead of raising."""
    global client, db
    cfg = cfg or settings

    try:
        target = resolve_connection(cfg)
    except CredentialError as exc:
        logger.warning("FIREBASE_SERVICE_ACCOUNT_BASE64 unusable (%s); document store disabled", exc)
        return False
    if target is None:
        logger.warning(
            "FIREBASE_SERVICE_ACCOUNT_BASE64 and MONGO_URI not set; document store disabled"
        )
        return False

    uri, database = target
    try:
        client = AsyncIOMotorClient(uri, maxPoolSize=10, minPoolSize=1)
        db = client[database]
        await _ensure_indexes(cfg)
    except PyMongoError as exc:
        logger.warning("Failed to initialize document store: %s", exc)
        if client is not None:
            client.close()
        client = None
        db = None
        return False

    logger.info("Document store initialized (database=%s)", database)
    return True


async def close_db() -> None:
    global client, db
    if client:
        client.close()
    client = None
    db = None


def get_db() -> AsyncIOMotorDatabase | None:
    return db


async def _ensure_indexes(cfg: Settings) -> None:
    """Create indexes on startup. Idempotent."""
    cache = db[cfg.ODDS_CACHE_COLLECTION]
    try:
        await cache.create_index([("lastFetched", -1)])
        await cache.create_index([("gameId", 1), ("commenceTime", 1)])
    except OperationFailure as exc:
        logger.warning("Skipped odds cache index creation: %s", exc)
