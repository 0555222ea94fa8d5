from grade_speeder.db.base_class import Base

# import models so SQLAlchemy registers them
from grade_speeder.models import local_state  # noqa: F401
