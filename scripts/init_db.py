import logging

from laundry.db.engine import get_engine
from laundry.db.schema import metadata

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    engine = get_engine()
    metadata.drop_all(engine)
    metadata.create_all(engine)
    logger.info("DB schema created at %s", engine.url.render_as_string(hide_password=True))


if __name__ == "__main__":
    main()
