from utils.pagination import extract_next_cursor, split_link_header

SELF_LINK = '<https://acme.okta.com/api/v1/users?limit=200>; rel="self"'
NEXT_LINK = '<https://acme.okta.com/api/v1/users?after=00u1abc&limit=200>; rel="next"'


def test_extracts_cursor_from_folded_header():
    header = f"{SELF_LINK}, {NEXT_LINK}"
    assert extract_next_cursor(header) == "00u1abc"


def test_extracts_cursor_from_header_list():
    assert extract_next_cursor([SELF_LINK, NEXT_LINK]) == "00u1abc"


def test_no_next_link_ends_pagination():
    assert extract_next_cursor(SELF_LINK) is None
    assert extract_next_cursor(None) is None
    assert extract_next_cursor("") is None


def test_unparseable_next_link_ends_pagination():
    # `after` is the last parameter, so the trailing `&` the pattern expects is absent
    header = '<https://acme.okta.com/api/v1/users?limit=200&after=00u1abc>; rel="next"'
    assert extract_next_cursor(header) is None


def test_split_link_header_keeps_each_entry():
    assert split_link_header(f"{SELF_LINK}, {NEXT_LINK}") == [SELF_LINK, NEXT_LINK]
