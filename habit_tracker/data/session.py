from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from habit_tracker.config import DATA_DIR, DATABASE_URL, DB_PATH

if DATABASE_URL.startswith("sqlite"):
    if DATABASE_URL == f"sqlite:///{DB_PATH}":
        DATA_DIR.mkdir(parents=True, exist_ok=True)
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
else:
    engine = create_engine(DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
