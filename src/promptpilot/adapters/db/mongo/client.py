"""
MongoDB connection setup shared by the API process and the pull worker.
"""

import logging

import certifi
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from promptpilot.core.config import DatabaseSettings

from .repositories.remote_prompt_store import document_models

logger = logging.getLogger(__name__)


def create_motor_client(database: DatabaseSettings) -> AsyncIOMotorClient:
    """Build a motor client; TLS with the certifi bundle only for Atlas SRV URIs."""
    if database.uri.startswith("mongodb+srv://"):
        return AsyncIOMotorClient(
            database.uri,
            serverSelectionTimeoutMS=database.server_selection_timeout_ms,
            tz_aware=True,
            tls=True,
            tlsCAFile=certifi.where(),
            tlsAllowInvalidCertificates=False,
        )
    # Local/standard connection (no TLS)
    return AsyncIOMotorClient(
        database.uri,
        serverSelectionTimeoutMS=database.server_selection_timeout_ms,
        tz_aware=True,
    )


async def init_mongo(database: DatabaseSettings) -> AsyncIOMotorClient:
    """Connect and register the prompt document models with Beanie."""
    client = create_motor_client(database)
    await init_beanie(database=client[database.db_name], document_models=document_models())
    logger.info("MongoDB initialized (db=%s)", database.db_name)
    return client
