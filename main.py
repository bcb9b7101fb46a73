"""
Entrypoint: load .env and config.yaml, then walk a scratch database through
create, write, read and delete.
"""

import asyncio
from datetime import datetime, timezone

import structlog
from dotenv import load_dotenv

from couchlayer.client import CouchClient
from couchlayer.config import Config
from couchlayer.log import configure_logging
from couchlayer.result import CouchError


async def run(client: CouchClient, db_name: str):
    """Create the database if needed, bump a counter document, clean up."""
    logger = structlog.get_logger(__name__)

    response = await client.list_databases()
    if db_name not in response.data:
        response = await client.create_database(db_name)
        logger.info("database_created", db=db_name, message=response.message)

    # update existing document or create new
    try:
        doc = (await client.get_document(db_name, 'mydoc')).data
        doc['counter'] += 1
    except CouchError as e:
        if e.status != 404:
            raise
        doc = {'counter': 1}
    doc['date'] = datetime.now(timezone.utc).isoformat()

    response = await client.create_document(db_name, doc, 'mydoc')
    logger.info("document_saved", rev=response.data['rev'], duration_ms=response.duration)

    response = await client.get_document(db_name, 'mydoc')
    logger.info("document_read", counter=response.data['counter'], date=response.data['date'])

    response = await client.delete_database(db_name)
    logger.info("database_deleted", db=db_name, message=response.message)


async def main():
    """Initialize configuration and logging, then run the walkthrough"""
    # Load environment variables from .env file
    load_dotenv()

    config = Config()
    configure_logging(config.logging.get('level', 'INFO'), config.logging.get('format', 'json'))
    logger = structlog.get_logger(__name__)

    async with CouchClient.from_config(config) as client:
        try:
            await run(client, 'simpledb')
        except CouchError as e:
            logger.error("walkthrough_failed", **e.result.to_dict())


if __name__ == "__main__":
    asyncio.run(main())
