# run_single_book.py
"""
Resolves metadata and a cover for a single, specified book.

Usage:
    python run_single_book.py "Mistborn: The Final Empire" "Brandon Sanderson"
"""
import sys
import os
import logging

# Add the project root to the Python path to allow for correct module imports
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from bookmeta import MetadataResolver, Settings, clean_title

settings = Settings.from_env()

# Configure basic logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


def run_single_book(title: str, author: str):
    """
    Builds the resolver from the environment and resolves one book.
    """
    print(f"🚀 RESOLVING: {title} by {author}")
    print(f"🔎 Search title: {clean_title(title)}")
    if not settings.isbndb_api_key:
        print("ℹ️  ISBNDB_API_KEY not set - using Google Books and Open Library only")
    print("=" * 70)

    resolver = MetadataResolver.from_settings(settings)
    metadata = resolver.resolve(title, author)

    print("-" * 70)
    print(f"📚 Source:      {metadata.source or '(none)'}")
    print(f"📄 Pages:       {metadata.page_count or '(none found)'}")
    print(f"🔢 ISBN:        {metadata.isbn or '(none found)'}")
    print(f"🖼️  Cover:       {metadata.cover_url or '(none found)'}")
    print(f"🏷️  Categories:  {', '.join(metadata.categories) if metadata.categories else '(none found)'}")
    if metadata.description:
        print(f"📝 Description: {metadata.description[:200]}{'...' if len(metadata.description) > 200 else ''}")
    else:
        print("📝 Description: (none found)")

    print("\n" + "=" * 70)
    print(f"✅ DONE - missing: {', '.join(metadata.missing_fields()) or 'nothing'}")
    print("=" * 70)


if __name__ == "__main__":
    if len(sys.argv) >= 3:
        book_title, book_author = sys.argv[1], sys.argv[2]
    else:
        # Example: the first Mistborn novel, with series notation the resolver strips
        book_title = "Mistborn: The Final Empire (Mistborn, #1)"
        book_author = "Brandon Sanderson"

    run_single_book(book_title, book_author)
