from .config import TableAccessConfig

__all__ = ["TableAccessConfig"]
