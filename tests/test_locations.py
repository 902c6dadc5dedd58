from rmdb.locations import Location


def test_default_location_starts_at_one():
    loc = Location()
    assert (loc.first_line, loc.first_column, loc.last_line, loc.last_column) == (
        1,
        1,
        1,
        1,
    )


def test_advance_on_single_line_moves_columns():
    loc = Location()
    loc.advance("select")
    assert loc.first_column == 1
    assert loc.last_column - loc.first_column == len("select")
    assert loc.first_line == loc.last_line == 1


def test_successive_tokens_are_contiguous():
    loc = Location()
    loc.advance("select")
    end = loc.last_column
    loc.advance(" ")
    assert loc.first_column == end
    assert loc.last_column == end + 1


def test_newline_resets_column_and_counts_line():
    loc = Location()
    loc.advance("abc")
    loc.advance("\n")
    assert loc.last_line == 2
    assert loc.last_column == 1
    assert loc.first_line == 1


def test_text_spanning_lines():
    loc = Location()
    loc.advance("'a\nbc'")
    assert loc.last_line == 2
    assert loc.last_column == 1 + len("bc'")


def test_empty_text_collapses_span():
    loc = Location()
    loc.advance("tb")
    loc.advance("")
    assert loc.first_column == loc.last_column
    assert loc.first_line == loc.last_line


def test_text_stops_at_nul():
    plain = Location()
    plain.advance("ab")
    truncated = Location()
    truncated.advance("ab\0cd")
    assert plain == truncated