from atlasfeed.ingestion.normalize import (
    collapse_whitespace,
    normalize_title_key,
    normalize_url,
    strip_html,
)


def test_normalize_url_drops_tracking_and_fragment():
    url = "HTTPS://Example.COM/a/b?utm_source=x&id=7&fbclid=abc&mc_cid=1#section"
    assert normalize_url(url) == "https://example.com/a/b?id=7"


def test_normalize_url_keeps_path_case():
    assert normalize_url("https://example.com/Path/To") == "https://example.com/Path/To"


def test_normalize_url_rejects_non_http():
    assert normalize_url("ftp://example.com/file") == ""
    assert normalize_url("javascript:alert(1)") == ""
    assert normalize_url("") == ""


def test_normalize_title_key():
    assert normalize_title_key("  Breaking: Mars Rover FINDS water!! ") == "breaking mars rover finds water"
    assert len(normalize_title_key("word " * 50)) == 80


def test_strip_html():
    assert strip_html("<p>Hello&nbsp;<b>world</b> &amp; co</p>") == "Hello world & co"
    assert strip_html("caf&eacute; &#8220;open&#8221;") == "caf\u00e9 \u201copen\u201d"
    assert strip_html("") == ""


def test_collapse_whitespace():
    assert collapse_whitespace(" a \n\t b  ") == "a b"
