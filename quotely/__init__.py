"""Quotely – offertbyggare med sektioner, rader, mallar och delningslänkar."""

__version__ = "0.3.0"
