"""Create the portal tables and point the home page at its first version if requested."""
import argparse
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import inspect

from portal.config import settings
from portal.database import Base, SessionLocal, engine
import portal.models  # noqa: F401 - registers all models
from portal.schemas.home_content import HomeContentIn
from portal.services import home_content_service


def init_db(with_home_content: bool = False):
    existing = set(inspect(engine).get_table_names())
    print(f"Initializing portal database at {settings.DATABASE_URL}")
    Base.metadata.create_all(bind=engine)
    for table in sorted(Base.metadata.tables):
        state = "exists" if table in existing else "created"
        print(f"  {table:<24} {state}")

    if with_home_content:
        db = SessionLocal()
        try:
            if home_content_service.get_home_content(db) is None:
                home_content_service.create_or_update_home_content(
                    db, HomeContentIn.model_validate(home_content_service.DEFAULT_HOME_CONTENT)
                )
                print("Default home content published as the active version.")
            else:
                print("Active home content already present. Skipping.")
        finally:
            db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--home", action="store_true", help="publish the default home content when none is active")
    args = parser.parse_args()
    init_db(with_home_content=args.home)
