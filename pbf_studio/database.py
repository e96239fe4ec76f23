# pbf_studio/database.py
from sqlmodel import create_engine, SQLModel

from pbf_studio.config import DB_FILE

engine = create_engine(f"sqlite:///{DB_FILE}", echo=False, connect_args={"check_same_thread": False})

def create_db_and_tables():
    # Import for the side effect of registering the tables on SQLModel.metadata
    from pbf_studio import models  # noqa: F401
    SQLModel.metadata.create_all(engine)
