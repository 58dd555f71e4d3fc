import pytest

from bookmeta.config import Settings
from bookmeta.models import BookMetadata
from bookmeta.pipeline import MetadataResolver, build_sources

from conftest import FIXED_NOW, GOOGLE_COVER, OPEN_LIBRARY_COVER


@pytest.mark.unit
def test_merge_is_fill_only_across_providers(fake_source, make_resolver) -> None:
    primary = fake_source("isbndb", BookMetadata(page_count=541, isbn="9780765311788"))
    fallback = fake_source("google", BookMetadata(
        page_count=999,
        description="A heist in a world of ash.",
        categories=["Fantasy"],
        cover_url=GOOGLE_COVER,
    ))

    result = make_resolver(primary, fallback).resolve("Mistborn", "Brandon Sanderson")

    assert result.page_count == 541
    assert result.isbn == "9780765311788"
    assert result.description == "A heist in a world of ash."
    assert result.cover_url == GOOGLE_COVER
    assert result.source == "isbndb"
    assert result.attempted_at == FIXED_NOW


@pytest.mark.unit
def test_stops_once_every_field_is_set(fake_source, make_resolver, complete_metadata) -> None:
    primary = fake_source("isbndb", complete_metadata)
    fallback = fake_source("google", BookMetadata(page_count=1))

    result = make_resolver(primary, fallback).resolve("Mistborn", "Brandon Sanderson")

    assert result.is_complete()
    assert fallback.calls == []


@pytest.mark.unit
def test_failing_provider_is_skipped(fake_source, make_resolver) -> None:
    primary = fake_source("isbndb", error=RuntimeError("connection reset"))
    fallback = fake_source("google", BookMetadata(page_count=412))

    result = make_resolver(primary, fallback).resolve("Dune", "Frank Herbert")

    assert result.page_count == 412
    assert result.source == "google"


@pytest.mark.unit
def test_known_fields_are_never_replaced(fake_source, make_resolver) -> None:
    known = BookMetadata(cover_url=OPEN_LIBRARY_COVER, page_count=300)
    source = fake_source("google", BookMetadata(cover_url=GOOGLE_COVER, page_count=412, isbn="9780441013593"))

    result = make_resolver(source).resolve("Dune", "Frank Herbert", known=known)

    assert result.cover_url == OPEN_LIBRARY_COVER
    assert result.page_count == 300
    assert result.isbn == "9780441013593"
    assert result.source == "google"
    # The caller's object is left untouched
    assert known.isbn is None


@pytest.mark.unit
def test_source_is_empty_when_nothing_new_was_found(fake_source, make_resolver, complete_metadata) -> None:
    source = fake_source("isbndb", complete_metadata)

    result = make_resolver(source).resolve("Mistborn", "Brandon Sanderson", known=complete_metadata)

    assert source.calls == []
    assert result.source is None
    assert result.attempted_at == FIXED_NOW


@pytest.mark.unit
def test_no_data_anywhere_still_marks_attempt(fake_source, make_resolver) -> None:
    result = make_resolver(fake_source("isbndb"), fake_source("google")).resolve("Unfindable", "Nobody")

    assert not result.has_data()
    assert result.source is None
    assert result.attempted_at == FIXED_NOW


@pytest.mark.unit
def test_find_cover_skips_primary_by_default(fake_source, make_resolver) -> None:
    primary = fake_source("isbndb", cover="https://images.isbndb.com/covers/1.jpg")
    google = fake_source("google", cover=None)
    openlibrary = fake_source("openlibrary", cover=OPEN_LIBRARY_COVER)
    resolver = make_resolver(primary, google, openlibrary)

    assert resolver.find_cover("Dune", "Frank Herbert") == (OPEN_LIBRARY_COVER, "openlibrary")
    assert primary.cover_calls == []
    assert resolver.find_cover("Dune", "Frank Herbert", include_primary=True) == (
        "https://images.isbndb.com/covers/1.jpg", "isbndb"
    )


@pytest.mark.unit
def test_build_sources_omits_primary_without_key() -> None:
    names = [s.name for s in build_sources(Settings())]
    assert names == ["google", "openlibrary"]

    names = [s.name for s in build_sources(Settings(isbndb_api_key="key"))]
    assert names == ["isbndb", "google", "openlibrary"]


@pytest.mark.unit
def test_from_settings_uses_configured_timeout() -> None:
    resolver = MetadataResolver.from_settings(Settings(request_timeout=3))
    assert all(s.api_caller.timeout == 3 for s in resolver.sources)
