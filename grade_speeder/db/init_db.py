from grade_speeder.db.base import Base
from grade_speeder.db.session import engine


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
