from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError

from fieldsync import models  # noqa: F401  registers the tables on Base.metadata
from fieldsync.config import settings
from fieldsync.db import Base


def main() -> int:
    database_url = settings.database_url
    print(f"DATABASE_URL={database_url}")
    engine = create_engine(database_url, pool_pre_ping=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("DB connection OK")
        existing = set(inspect(engine).get_table_names())
        missing = [name for name in Base.metadata.tables if name not in existing]
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as exc:
        print("DB connection FAILED")
        print(exc)
        return 1
    finally:
        engine.dispose()
    if missing:
        print(f"Created tables: {', '.join(sorted(missing))}")
    else:
        print("All tables present")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
