"""Create the trip tree table for the configured database."""

import asyncio
import logging
from typing import Optional

from config import Settings, get_settings, setup_logging
from store import SqlTreeStore

logger = logging.getLogger(__name__)


async def init_db(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    store = SqlTreeStore.from_url(settings.database_url)
    try:
        await store.create_schema()
        logger.info(f"Trip tree schema ready at {store.engine.url.render_as_string(hide_password=True)}")
    finally:
        await store.close()


def main() -> None:
    setup_logging()
    asyncio.run(init_db())


if __name__ == "__main__":
    main()
