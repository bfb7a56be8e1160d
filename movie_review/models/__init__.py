from ..extensions import db

__all__ = ["db"]
