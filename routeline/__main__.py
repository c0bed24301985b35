import asyncio
import logging
import sys

from dotenv import load_dotenv

load_dotenv()  # Load .env before reading any configuration

from routeline.config import get_log_level, get_route_filter, get_storage_dir  # noqa: E402
from routeline.models import RouteStatus  # noqa: E402
from routeline.pipeline import run_pipeline  # noqa: E402
from routeline.storage import PipelineConfigError  # noqa: E402

logger = logging.getLogger("routeline")


def main() -> int:
    logging.basicConfig(level=get_log_level())

    storage_dir = get_storage_dir()
    route_filter = get_route_filter()
    if route_filter:
        logger.info(f"Restricting run to routes matching '{route_filter}'")

    try:
        report = asyncio.run(run_pipeline(storage_dir, route_filter))
    except PipelineConfigError as e:
        logger.error(str(e))
        return 2

    return 1 if report.count(RouteStatus.FAILED) else 0


if __name__ == "__main__":
    sys.exit(main())
