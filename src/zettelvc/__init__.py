"""
zettelvc - a terminal Zettelkasten whose notes live in a version-controlled store.

Every change to a note is recorded as one entry in the backing store's history,
so the history doubles as a readable audit log of the knowledge base.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("zettelvc")
except PackageNotFoundError:
    __version__ = "0.3.0"
