import argparse
import json
import sys
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

from listing_optimizer import services
from listing_optimizer.config import load_settings
from listing_optimizer.db import Base, create_db_engine, make_session_factory
from listing_optimizer.errors import ListingError
from listing_optimizer.optimizer import build_optimizer
from listing_optimizer.scrape import build_scraper


def main(argv=None):
    parser = argparse.ArgumentParser(description="Resolve an ASIN and store its listing.")
    parser.add_argument("asin")
    parser.add_argument("--optimize", action="store_true", help="also rewrite the listing and store both rows")
    args = parser.parse_args(argv)

    settings = load_settings()
    engine = create_db_engine(settings.database_url, settings.db_pool_size, settings.db_max_overflow)
    Base.metadata.create_all(bind=engine)
    db = make_session_factory(engine)()
    try:
        original, optimized = services.resolve_listing(db, args.asin, build_scraper(settings))
        print(json.dumps({"original": original.model_dump()}, indent=2, ensure_ascii=False))
        if args.optimize:
            optimized = services.optimize_listing(db, args.asin, original, build_optimizer(settings))
        if optimized is not None:
            print(json.dumps({"optimized": optimized.model_dump()}, indent=2, ensure_ascii=False))
    except ListingError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
