"""
Voting Node package initializer

Keep this module lightweight. Do not import the API or executor here,
so the runtime and client helpers import without FastAPI on the path.
"""

__all__ = []
