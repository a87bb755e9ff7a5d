# conduct_scoring/db/init_db.py
from conduct_scoring.db.base import Base
from conduct_scoring.db.session import engine


def init_db():
    Base.metadata.create_all(bind=engine)
