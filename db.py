import logging
import os

from dotenv import load_dotenv
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import PyMongoError

from portfolio_pipeline import (
    JOB_GROUPS_COLLECTION,
    LIKES_COLLECTION,
    PORTFOLIOS_COLLECTION,
    TECH_STACKS_COLLECTION,
)

load_dotenv()

logger = logging.getLogger(__name__)

# Read MongoDB URI from environment
MONGO_URI = os.environ.get("MONGO_URI", "mongodb://localhost:27017")

# Initialize a single global client and expose `db` for use across the app.
# MongoClient connects lazily, so importing this module does no I/O.
client = MongoClient(MONGO_URI)

# Default database name (can be overridden in environment)
DB_NAME = os.environ.get("PORTFOLIO_DB", "portfolio")
db = client[DB_NAME]

portfolios_collection = db[PORTFOLIOS_COLLECTION]
likes_collection = db[LIKES_COLLECTION]
tech_stacks_collection = db[TECH_STACKS_COLLECTION]
job_groups_collection = db[JOB_GROUPS_COLLECTION]


def init_db():
    """
    Create the indexes the portfolio listing pipeline relies on.
    This is called once on app startup.
    """
    try:
        portfolios_collection.create_index([("createdAt", DESCENDING)])
        portfolios_collection.create_index([("userID", ASCENDING)])
        portfolios_collection.create_index([("jobGroup", ASCENDING)])
        likes_collection.create_index([("portfolioID", ASCENDING)])
        tech_stacks_collection.create_index([("skill", ASCENDING)])
    except PyMongoError as e:
        logger.warning(f"Could not create indexes: {e}")
