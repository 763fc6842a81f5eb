from .session import init_db, make_engine

__all__ = ["init_db", "make_engine"]
