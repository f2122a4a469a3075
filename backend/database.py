# backend/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from dotenv import load_dotenv

from config import settings

load_dotenv()

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# Hosted Postgres URLs still use the old scheme, SQLAlchemy requires postgresql://
if SQLALCHEMY_DATABASE_URL and SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)


def build_connect_args(url: str) -> dict:
    if "sqlite" in url:
        return {"check_same_thread": False}
    # Bound how long a SELECT ... FOR UPDATE waits on a locked batch row
    return {"options": f"-c lock_timeout={settings.DB_LOCK_TIMEOUT_MS}"}


engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args=build_connect_args(SQLALCHEMY_DATABASE_URL)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    # Register every table on Base.metadata before creating
    import models.users  # noqa: F401
    import models.log  # noqa: F401
    import models.product  # noqa: F401
    import models.batch  # noqa: F401
    import models.stock  # noqa: F401
    import models.goods_receipt  # noqa: F401
    import models.counter  # noqa: F401

    Base.metadata.create_all(bind=engine)
