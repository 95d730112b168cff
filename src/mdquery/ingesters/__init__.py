"""File enumeration for collections."""

from mdquery.ingesters.glob_ingester import GlobIngester

__all__ = ["GlobIngester"]
