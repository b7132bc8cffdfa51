from .session import create_all, get_session, make_engine, make_sessionmaker

__all__ = ["create_all", "get_session", "make_engine", "make_sessionmaker"]
