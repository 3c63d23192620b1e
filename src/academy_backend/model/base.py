from uuid import uuid4
from sqlalchemy.orm import declarative_base

Base = declarative_base()
metadata = Base.metadata


def new_id() -> str:
    return str(uuid4())
