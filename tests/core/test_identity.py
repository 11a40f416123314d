import math

from bookshelf.core.identity import (
    author_last_name,
    derive_key,
    encode_component,
    isbn_candidates,
    normalize_isbn,
    rating_key,
    series_name,
    series_number,
    shelf_order,
    slugify,
)
from bookshelf.core.models import BookRecord

# -------------------------------------------------------------
# normalize_isbn
# -------------------------------------------------------------


def test_normalize_isbn_strips_hyphens():
    assert normalize_isbn("978-0-13-468599-1") == normalize_isbn("9780134685991")
    assert normalize_isbn("978-0-13-468599-1") == "9780134685991"


def test_normalize_isbn_keeps_check_letter():
    assert normalize_isbn("0-8044-2957-x") == "080442957x"
    assert normalize_isbn(" ISBN 0 8044 2957 X ") == "080442957X"


def test_normalize_isbn_empty():
    assert normalize_isbn(None) == ""
    assert normalize_isbn("") == ""


def test_isbn_candidates_order_and_skip_empty():
    book = BookRecord(isbn13="978-0441013593", isbn="0441013597")
    assert isbn_candidates(book) == ["9780441013593", "0441013597"]


# -------------------------------------------------------------
# derive_key
# -------------------------------------------------------------


def test_derive_key_precedence():
    assert derive_key(BookRecord(isbn13="1", isbn10="2", isbn="3", id="4", title="T")) == "1"
    assert derive_key(BookRecord(isbn10="2", isbn="3", id="4")) == "2"
    assert derive_key(BookRecord(isbn="3", id="4")) == "3"
    assert derive_key(BookRecord(id="4", title="T")) == "4"


def test_derive_key_title_author_fallback():
    assert derive_key(BookRecord(title="Dune", author="Frank Herbert")) == "Dune|Frank Herbert"
    assert derive_key(BookRecord(title="Dune")) == "Dune|"
    assert derive_key(BookRecord()) == "|"


def test_derive_key_numeric_id_from_catalog():
    book = BookRecord.from_dict({"title": "Dune", "id": 234225})
    assert derive_key(book) == "234225"


def test_rating_key_prefers_goodreads_id():
    assert rating_key(BookRecord(goodreads_id="44767458", id="1")) == "44767458"
    assert rating_key(BookRecord(id="1")) == "1"
    assert rating_key(BookRecord(title="x")) == ""


# -------------------------------------------------------------
# helpers
# -------------------------------------------------------------


def test_author_last_name():
    assert author_last_name("Frank Herbert") == "herbert"
    assert author_last_name("  Ursula K. Le Guin ") == "guin"
    assert author_last_name("") == ""


def test_slugify():
    book = BookRecord(title="The Left Hand of Darkness!", author="Ursula K. Le Guin", isbn13="9780441478125")
    assert slugify(book) == "the-left-hand-of-darkness-ursula-k-le-guin-9780441478125"


def test_slugify_defaults_and_length():
    assert slugify(BookRecord()) == "book-author"
    assert len(slugify(BookRecord(title="a" * 200))) == 80


def test_encode_component_matches_uri_component():
    assert encode_component("isbn:978 0") == "isbn%3A978%200"
    assert encode_component("Don't (Panic)!") == "Don't%20(Panic)!"


def test_series_from_title():
    assert series_name("Dune Messiah (Dune #2)") == "dune"
    assert series_name("The Final Empire (Mistborn  #1)") == "mistborn"
    assert series_name("Dune") == ""
    assert series_number("Dune Messiah (Dune #2)") == 2
    assert series_number("Dune") == math.inf


def test_shelf_order():
    books = [
        BookRecord(title="Children of Dune (Dune #3)", author="Frank Herbert"),
        BookRecord(title="Dune Messiah (Dune #2)", author="Frank Herbert"),
        BookRecord(title="Unknown Book"),
        BookRecord(title="The Dispossessed", author="Ursula K. Le Guin"),
    ]
    assert [b.title for b in sorted(books, key=shelf_order)] == [
        "Unknown Book",
        "The Dispossessed",
        "Dune Messiah (Dune #2)",
        "Children of Dune (Dune #3)",
    ]
