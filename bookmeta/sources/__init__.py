# bookmeta/sources/__init__.py
"""
External bibliographic providers, in priority order.
"""

from .isbndb import ISBNdbSource, process_isbndb_book
from .google import GoogleBooksSource, process_google_volume, extract_google_cover
from .openlibrary import OpenLibrarySource, process_open_library_doc
from .matching import select_best_match

__all__ = [
    "ISBNdbSource",
    "GoogleBooksSource",
    "OpenLibrarySource",
    "process_isbndb_book",
    "process_google_volume",
    "extract_google_cover",
    "process_open_library_doc",
    "select_best_match",
]
