"""
Declarative base shared by all memory models.
"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
