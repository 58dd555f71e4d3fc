import asyncio

import pytest

from bookmeta.models import BookRecord
from bookmeta.pipeline import SearchAggregator, rank_candidates, score_match
from bookmeta.pipeline.search import dedupe_cached_rows, sanitize_query, source_tag
from bookmeta.storage import InMemoryBookStore

from conftest import OPEN_LIBRARY_COVER


def _book(title: str, author: str = "", cover: str = None, **kwargs) -> BookRecord:
    return BookRecord(id=kwargs.pop("id", title), title=title, author=author, cover_url=cover, **kwargs)


class FakeSearchSource:

    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error
        self.queries = []

    async def search_async(self, session, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.records


@pytest.mark.unit
def test_dune_ranking() -> None:
    results = rank_candidates(
        [("cache", [
            _book("The Spice Trade", "Frank Dune"),
            _book("Dune Messiah", "Frank Herbert"),
            _book("Dune", "Frank Herbert"),
        ])],
        "dune",
    )

    assert [c.book.title for c in results] == ["Dune", "Dune Messiah", "The Spice Trade"]
    assert results[0].match_score == 100
    assert results[1].match_score == 90
    assert results[2].match_score < results[1].match_score


@pytest.mark.unit
@pytest.mark.parametrize(
    "title,author,query,expected",
    [
        ("Dune", "Frank Herbert", "dune", 100),
        ("Dune Messiah", "Frank Herbert", "DUNE", 90),
        ("Collected Stories", "Frank Herbert", "frank herbert", 85),
        ("Children of Dune", "Frank Herbert", "dune", 70),
        ("Mistborn: The Final Empire", "Brandon Sanderson", "empire final", 50),
        ("Mistborn: The Final Empire", "Brandon Sanderson", "empire shadows", 15),
        ("Mistborn", "Brandon Sanderson", "of an", 0),
        ("Mistborn", "Brandon Sanderson", "zebra quilt", 0),
    ],
)
def test_score_tiers(title: str, author: str, query: str, expected: float) -> None:
    assert score_match(title, author, query) == expected


@pytest.mark.unit
def test_ties_prefer_books_with_covers() -> None:
    results = rank_candidates(
        [("cache", [_book("Children of Dune"), _book("Heretics of Dune", cover=OPEN_LIBRARY_COVER)])],
        "dune",
    )

    assert results[0].match_score == results[1].match_score
    assert results[0].book.title == "Heretics of Dune"
    assert results[0].has_cover and not results[1].has_cover


@pytest.mark.unit
def test_first_occurrence_of_a_title_wins() -> None:
    cached = _book("Dune", "Frank Herbert", cover=OPEN_LIBRARY_COVER, id="row-1")
    external = _book("dune ", "Frank Herbert", id="gb-1")

    results = rank_candidates([("cache", [cached]), ("google", [external])], "dune")

    assert len(results) == 1
    assert results[0].book.id == "row-1"
    assert results[0].source == "cache"


@pytest.mark.unit
def test_results_are_capped_at_twelve() -> None:
    books = [_book(f"Dune Volume {i}") for i in range(20)]
    assert len(rank_candidates([("openlibrary", books)], "dune")) == 12


@pytest.mark.unit
def test_cached_duplicates_keep_richer_row() -> None:
    plain = _book("Dune", "Frank Herbert", cover=OPEN_LIBRARY_COVER, id="a")
    rich = _book("Dune", "Frank Herbert", cover=OPEN_LIBRARY_COVER, id="b", description="Desert planet.")

    assert [r.id for r in dedupe_cached_rows([plain, rich])] == ["b"]


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw,expected",
    [
        ("  dune  ", "dune"),
        ("a", None),
        ("   ", None),
        (None, None),
        (42, None),
        ("dune<script>", "dunescript"),
    ],
)
def test_sanitize_query(raw, expected) -> None:
    assert sanitize_query(raw) == expected


@pytest.mark.unit
def test_sanitize_query_bounds_length() -> None:
    assert len(sanitize_query("x" * 500)) == 200


@pytest.mark.unit
@pytest.mark.parametrize(
    "sets,expected",
    [
        ([("cache", []), ("openlibrary", []), ("google", [])], "none"),
        ([("cache", []), ("openlibrary", [_book("Dune")]), ("google", [])], "openlibrary"),
        ([("cache", [_book("Dune")]), ("openlibrary", []), ("google", [_book("Dune")])], "combined"),
    ],
)
def test_source_tag(sets, expected: str) -> None:
    assert source_tag(sets) == expected


class TestSearchAggregator:

    @pytest.mark.unit
    def test_combines_cache_and_providers(self) -> None:
        store = InMemoryBookStore([_book("Dune", "Frank Herbert", cover=OPEN_LIBRARY_COVER, id="row-1")])
        google = FakeSearchSource([_book("Dune Messiah", "Frank Herbert", id="gb-1")])
        openlibrary = FakeSearchSource(error=RuntimeError("timeout"))

        result = asyncio.run(SearchAggregator(store, google, openlibrary).search("Dune"))

        assert [c.book.id for c in result.items] == ["row-1", "gb-1"]
        assert result.source == "combined"
        assert google.queries == ["Dune"]
        assert openlibrary.queries == ["Dune"]

    @pytest.mark.unit
    def test_uncovered_rows_are_not_served_from_cache(self) -> None:
        store = InMemoryBookStore([_book("Dune", "Frank Herbert", id="row-1")])
        aggregator = SearchAggregator(store, FakeSearchSource(), FakeSearchSource())

        result = asyncio.run(aggregator.search("dune"))

        assert result.items == []
        assert result.to_dict() == {"items": [], "source": "none"}

    @pytest.mark.unit
    def test_short_query_skips_providers(self) -> None:
        google, openlibrary = FakeSearchSource(), FakeSearchSource()

        result = asyncio.run(SearchAggregator(None, google, openlibrary).search(" d "))

        assert result.items == []
        assert google.queries == [] and openlibrary.queries == []

    @pytest.mark.unit
    def test_lookup_isbn_hits_cache_only(self) -> None:
        store = InMemoryBookStore([
            _book("Dune", "Frank Herbert", cover=OPEN_LIBRARY_COVER, id="row-1", isbn="9780441013593"),
        ])
        aggregator = SearchAggregator(store, FakeSearchSource(), FakeSearchSource())

        hit = aggregator.lookup_isbn("978-0-441-01359-3")

        assert hit.book.id == "row-1"
        assert hit.match_score == 100
        assert aggregator.lookup_isbn("9780000000000") is None
