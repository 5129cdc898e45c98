"""
Run an area analysis from the command line.

Uses FOURSQUARE_API_KEY from the environment / .env. Venues without premium
visit statistics are estimated, so a standard key is enough.

Usage:
    python scripts/run_area_analysis.py --lat 13.7563 --lng 100.5018 --radius 1000
    python scripts/run_area_analysis.py --lat 40.7580 --lng -73.9855 --json
"""
import argparse
import asyncio
import json
import logging
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from footfall.analytics.engine import FootTrafficAnalyzer
from footfall.analytics.exceptions import VenueDirectoryUnavailable
from footfall.analytics.models import AreaQuery
from footfall.core.config import MissingFoursquareAPIKeyError, get_settings


def print_summary(analysis) -> None:
    print(f"\n=== AREA ANALYSIS ({analysis.location.latitude}, {analysis.location.longitude}) "
          f"r={analysis.location.radius_meters}m ===\n")
    print(f"Venues:               {analysis.total_venues}")
    print(f"Avg daily visits:     {analysis.average_daily_visits}")
    print(f"Total daily visits:   {analysis.total_daily_visits}")
    print(f"Peak hours:           {', '.join(f'{h:02d}:00' for h in analysis.peak_hours) or '-'}")
    print(f"Competition density:  {analysis.competition_density} venues/km²")
    print(f"Opportunity score:    {analysis.opportunity_score}/100")
    print(f"Confidence:           {analysis.confidence_level}")
    print(f"Estimated data:       {analysis.estimated_data}")
    if analysis.cached:
        print(f"Cached:               {analysis.cache_date}")

    if analysis.trends:
        print("\nTrends:")
        for trend in analysis.trends:
            print(f"  - {trend.period}: {trend.description}")

    print("\nInsights:")
    for insight in analysis.insights:
        print(f"  - {insight}")


async def run(args) -> int:
    settings = get_settings()
    try:
        analyzer = FootTrafficAnalyzer.from_settings(settings)
    except MissingFoursquareAPIKeyError as e:
        print(f"Error: {e}")
        return 1

    query = AreaQuery(
        latitude=args.lat,
        longitude=args.lng,
        radius_meters=args.radius or settings.default_radius_meters,
    )

    try:
        analysis = await analyzer.analyze_area(query)
    except VenueDirectoryUnavailable as e:
        print(f"Venue directory unavailable: {e}")
        return 2
    finally:
        await analyzer.close()

    if args.json:
        print(json.dumps(analysis.to_dict(), indent=2))
    else:
        print_summary(analysis)
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Estimate foot traffic and opportunity for an area"
    )
    parser.add_argument(
        "--lat", type=float, required=True,
        help="Center latitude"
    )
    parser.add_argument(
        "--lng", type=float, required=True,
        help="Center longitude"
    )
    parser.add_argument(
        "--radius", type=int, default=None,
        help="Search radius in meters (default: DEFAULT_RADIUS_METERS)"
    )
    parser.add_argument(
        "--json", action="store_true",
        help="Print the full analysis as JSON"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
