from .sql_link_store import SqlLinkStore

__all__ = ["SqlLinkStore"]
