"""readshelf - a personal reading list backed by a book catalog search."""

__version__ = "0.1.0"
