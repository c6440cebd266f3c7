import argparse
import logging
import sys
from datetime import date, datetime

from masjid.core.config import Config
from masjid.core.app import MasjidApp
from masjid.prayer.errors import PrayerComputationError
from masjid.prayer.schedule import compute_todays_prayer_times
from masjid.prayer.service import location_from_config, parameters_from_config


def setup_basic_logging():
    """Setup basic stdout logging before config is loaded"""
    root_logger = logging.getLogger()
    if not root_logger.handlers:  # Only add handler if none exists
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        ))
        root_logger.addHandler(handler)
        root_logger.setLevel(logging.DEBUG)
        logging.debug("Basic logging initialized")


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD")


def print_schedule(config_path: str, day: date = None) -> int:
    """Compute one day's schedule from the config file and print it."""
    config = Config(config_path=config_path, watch=False)
    location = location_from_config(config.data)
    parameters = parameters_from_config(config.data)
    target = day or datetime.now(location.zone).date()
    try:
        schedule = compute_todays_prayer_times(
            target,
            config.data.get("prayer_settings") or None,
            location=location,
            parameters=parameters,
        )
    except PrayerComputationError as e:
        logging.error(f"Could not compute prayer times for {target}: {e}")
        return 1

    print(f"Prayer times for {schedule.date:%A %d %B %Y} ({location.timezone})")
    for prayer in schedule.prayers:
        row = prayer.to_dict()
        print(f"  {prayer.name:<8} athan {row['athan']:>8}   iqamah {row['iqamah']:>8}")
        if prayer.name == "Fajr":
            print(f"  {'Sunrise':<8} {schedule.sunrise.to_dict()['athan']:>14}")
    special = schedule.special.to_dict()
    if special["jumuah"]:
        print(f"  Jumu'ah  arabic {special['jumuah']['arabic_khutbah']}, english {special['jumuah']['english_khutbah']}")
    for key in ("taraweeh", "eid_fitr", "eid_adha"):
        if special[key]:
            print(f"  {special[key]['name']:<8} {special[key]['time']:>14}")
    return 0


def main(argv=None) -> int:
    setup_basic_logging()

    parser = argparse.ArgumentParser(description='Masjid prayer times service')
    parser.add_argument('--config',
                        help='Path to config file (default: ./config.yaml)')
    parser.add_argument('--date', type=_parse_date,
                        help='Date to print with --once (YYYY-MM-DD, default: today at the masjid)')
    parser.add_argument('--once', action='store_true',
                        help='Print one day\'s schedule and exit instead of running the service')

    args = parser.parse_args(argv)
    config_path = args.config if args.config else "config.yaml"

    if args.once or args.date:
        return print_schedule(config_path, args.date)

    app = MasjidApp(config_path=config_path)
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
