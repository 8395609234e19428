"""Baitulmal — zakat and khairat fund engine for mosque administration."""

__version__ = "0.1.0"
