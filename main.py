from __future__ import annotations

import argparse
import logging
import sys

from btc_daily_mailer import config
from btc_daily_mailer.api import run_api_server
from btc_daily_mailer.orchestrator import run_once, run_scheduled
from btc_daily_mailer.scheduler import DailyScheduler

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Daily BTC market report mailer.")
    parser.add_argument("--once", action="store_true", help="send one report and exit")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    try:
        settings = config.Settings.from_env()
    except ValueError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    if args.once:
        try:
            run_once(settings)
        except Exception as exc:  # noqa: BLE001
            logging.exception("Run failed: %s", exc)
            return 1
        return 0

    scheduler = DailyScheduler(lambda: run_scheduled(settings), tz_name=settings.timezone)
    scheduler.start()
    logger.info(
        "Daily emails scheduled for %02d:%02d %s",
        config.SCHEDULE_HOUR,
        config.SCHEDULE_MINUTE,
        settings.timezone,
    )
    logger.info("Recipient: %s", settings.to_email or "Not configured")
    logger.info("Provider: %s", settings.provider_name)
    try:
        run_api_server(settings)
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        scheduler.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
