"""CLI job that re-geocodes stored builders and flags coordinates that drifted."""

import argparse
import logging
from dataclasses import dataclass
from typing import List, Optional

from builder_pipeline.core.db import init_pool, list_builders, update_coordinates
from builder_pipeline.core.geocoder import GeocodeUnavailable, GeocodingResolver, distance_miles
from builder_pipeline.etl.transform import from_builder_row

logger = logging.getLogger(__name__)

DRIFT_THRESHOLD_MILES = 0.1


@dataclass
class CoordinateCheck:
    name: str
    query_city: Optional[str]
    stored: Optional[tuple]
    fresh: Optional[tuple]
    accuracy: Optional[str]
    drift_miles: Optional[float]

    @property
    def needs_update(self) -> bool:
        if self.fresh is None:
            return False
        if self.stored is None:
            return True
        return self.drift_miles is not None and self.drift_miles > DRIFT_THRESHOLD_MILES


def check_builders(resolver: GeocodingResolver, state: Optional[str] = None) -> List[CoordinateCheck]:
    checks = []
    for row in list_builders(state):
        record = from_builder_row(row)
        stored = (record.lat, record.lng) if record.lat is not None and record.lng is not None else None
        try:
            result = resolver.resolve(record.address, record.city, record.state)
        except GeocodeUnavailable as exc:
            logger.warning("Cannot verify %s: %s", record.name, exc)
            checks.append(CoordinateCheck(record.name, record.city, stored, None, None, None))
            continue

        fresh = (result.lat, result.lng)
        drift = distance_miles(stored, fresh) if stored else None
        check = CoordinateCheck(record.name, record.city, stored, fresh, result.accuracy, drift)
        if check.needs_update:
            logger.warning(
                "%s drifted %s from a fresh %s geocode",
                record.name,
                f"{drift:.2f} mi" if drift is not None else "(no stored coordinates)",
                result.accuracy,
            )
        checks.append(check)
    return checks


def verify_coordinates_job(*, state: Optional[str] = None, apply: bool = False) -> List[CoordinateCheck]:
    init_pool()
    checks = check_builders(GeocodingResolver.from_settings(), state)
    flagged = [check for check in checks if check.needs_update]
    logger.info("Checked %d builder(s); %d need coordinate updates", len(checks), len(flagged))

    if apply:
        for check in flagged:
            update_coordinates(check.name, check.fresh[0], check.fresh[1])
            logger.info("Updated coordinates for %s", check.name)
    return checks


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Verify stored builder coordinates against fresh geocodes")
    parser.add_argument("--state", dest="state", help="Only check builders in this state")
    parser.add_argument("--apply", dest="apply", action="store_true", help="Write fresh coordinates for drifted builders")
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args()
    verify_coordinates_job(state=args.state, apply=args.apply)


if __name__ == "__main__":
    main()
