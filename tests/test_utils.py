from design_assistant.utils import (
    extract_json_object,
    is_private_url,
    normalize_text,
    sanitize_url,
    strip_local_links,
    tokenize_query,
)


def test_normalize_strips_marker_parenthetical_and_accents():
    assert normalize_text("HS: Select (Native)") == "select"
    assert normalize_text("  Café·Menu / Item ") == "cafe menu item"
    assert normalize_text(None) == ""


def test_normalize_is_idempotent():
    samples = ["HS: hs: Button", "Date-Picker (Beta) v2", "  Ünïcode__Label  ", "((nested)) text", ""]
    for sample in samples:
        once = normalize_text(sample)
        assert normalize_text(once) == once


def test_tokenize_drops_empty_words():
    tokens = tokenize_query("  Multi -- Select ")
    assert tokens.normalized == "multi select"
    assert tokens.words == ("multi", "select")


def test_extract_json_object_from_prose_and_fences():
    text = 'Here you go:\n```json\n{"componentName": "Button", "usage": "- Use {braces} carefully"}\n```'
    assert extract_json_object(text) == {"componentName": "Button", "usage": "- Use {braces} carefully"}


def test_extract_json_object_skips_invalid_blocks():
    text = "{not json} then {\"ok\": true}"
    assert extract_json_object(text) == {"ok": True}


def test_extract_json_object_never_raises_on_malformed_input():
    for sample in ["{", "}{", '{"a": "unterminated', "[1, 2]", "{{{{", "", None, 42]:
        assert extract_json_object(sample) is None


def test_private_urls_are_detected():
    assert is_private_url("http://localhost:3000/x")
    assert is_private_url("http://127.0.0.1/x")
    assert is_private_url("http://10.0.0.5/x")
    assert is_private_url("http://192.168.1.20:8080/")
    assert is_private_url("http://[::1]/x")
    assert is_private_url("http://devbox.local/x")
    assert not is_private_url("https://www.figma.com/file/ABC")


def test_sanitize_url_accepts_public_http_only():
    assert sanitize_url("https://storybook.example.com/?path=/story/a") == "https://storybook.example.com/?path=/story/a"
    assert sanitize_url("ftp://example.com/file") is None
    assert sanitize_url("/relative/path") is None
    assert sanitize_url("http://localhost:3000/x") is None
    assert sanitize_url(None) is None


def test_strip_local_links_removes_loopback_urls():
    text = 'See http://localhost:3000/docs and https://example.com/ok'
    assert strip_local_links(text) == "See  and https://example.com/ok"
