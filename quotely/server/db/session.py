from sqlmodel import SQLModel, create_engine


def make_engine(database_url: str, echo: bool = False):
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_engine(database_url, echo=echo, connect_args=connect_args)


def init_db(engine) -> None:
    # Se till att tabellmodellerna är laddade innan create_all
    from quotely.server.models import __all_models  # noqa: F401
    SQLModel.metadata.create_all(engine)
