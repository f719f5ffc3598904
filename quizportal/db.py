from sqlmodel import SQLModel, create_engine, Session
import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./quizportal.db")


def create_db_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_engine(url, echo=False, connect_args=connect_args)


engine = create_db_engine(DATABASE_URL)


def init_db():
    # registers the tables on SQLModel.metadata
    import quizportal.models  # noqa: F401
    SQLModel.metadata.create_all(engine)


def get_session():
    return Session(engine, expire_on_commit=False)
