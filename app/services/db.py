import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING

from app.models.ai_settings import StorageSettings
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

# Collections
CANDIDATES = "candidates"
JOBS = "jobs"
COMPANIES = "companies"
MATCHES = "matches"


def create_database(settings: StorageSettings):
    """Build a motor client for the configured deployment and return the database handle"""
    logger.info(f"Initializing MongoDB connection to database: {settings.db_name}")
    try:
        client = motor.motor_asyncio.AsyncIOMotorClient(settings.mongo_details)
    except Exception as e:
        logger.error(f"Failed to initialize MongoDB client: {e}")
        raise
    logger.info("MongoDB client initialized successfully")
    return client[settings.db_name]


async def _ensure_index(coll, keys, **kwargs):
    try:
        await coll.create_index(keys, **kwargs)
        logger.debug(f"Ensured index on {coll.name}: {keys}")
    except Exception as e:
        if "already exists" in str(e).lower():
            logger.debug(f"Index on {coll.name} {keys} already exists")
        else:
            logger.warning(f"Could not create index on {coll.name} {keys}: {e}")


async def init_indexes(db):
    """Index initialization for collections."""
    logger.info("Starting database index initialization")

    for name in (CANDIDATES, JOBS, COMPANIES, MATCHES):
        await _ensure_index(db[name], [("id", ASCENDING)], unique=True)

    # One match row per (candidate, job) pair
    await _ensure_index(
        db[MATCHES], [("candidate_id", ASCENDING), ("job_id", ASCENDING)], unique=True
    )
    await _ensure_index(db[MATCHES], [("status", ASCENDING), ("overall_score", DESCENDING)])
    await _ensure_index(db[MATCHES], [("job_id", ASCENDING)])
    await _ensure_index(db[JOBS], [("status", ASCENDING)])

    logger.info("Database index initialization completed")


def to_dict(doc):
    if not doc:
        return None
    doc = dict(doc)
    doc.pop("_id", None)
    return doc
