import pytest

from design_assistant.intent import (
    COMPONENT_LOOKUP,
    COPY_REVIEW,
    FRAME_REVIEW,
    GENERAL,
    DesignLink,
    classify,
    extract_copy_candidate,
    needs_deep_text,
    normalize_node_id,
    parse_design_link,
)


@pytest.mark.parametrize(
    "message, expected",
    [
        ("Review https://www.figma.com/file/ABC123/App?node-id=10-20", FRAME_REVIEW),
        ("check this copy and tone https://www.figma.com/design/ABC/x?node-id=1-2", FRAME_REVIEW),
        ("Check this copy: Your account has been locked.", COPY_REVIEW),
        ("Can you review the tone of this banner", COPY_REVIEW),
        (
            "Please check whether the sentence we show after payment fails reads well. It feels long.",
            COPY_REVIEW,
        ),
        ("Which component should I use for filters?", COMPONENT_LOOKUP),
        ("date picker", COMPONENT_LOOKUP),
        ("select", COMPONENT_LOOKUP),
        ("How should our onboarding flow feel for new merchants?", GENERAL),
        ("https://www.figma.com/file/ABC123/App", GENERAL),
        ("", GENERAL),
    ],
)
def test_classify(message, expected):
    assert classify(message) == expected


def test_frame_link_wins_over_copy_keywords():
    message = "rewrite the error message in https://www.figma.com/file/K/F?node-id=3-4"
    assert classify(message) == FRAME_REVIEW


def test_parse_design_link_normalizes_dash_node_id():
    assert parse_design_link("https://www.figma.com/file/ABC123?node-id=10-20") == DesignLink("ABC123", "10:20")
    assert parse_design_link("https://figma.com/design/XYZ/Name?node-id=5%3A6") == DesignLink("XYZ", "5:6")


def test_parse_design_link_rejects_bad_links():
    assert parse_design_link("https://www.figma.com/file/ABC123") is None
    assert parse_design_link("https://example.com/file/ABC?node-id=1-2") is None
    assert parse_design_link("https://www.figma.com/proto?node-id=1-2") is None
    assert parse_design_link(None) is None


def test_normalize_node_id_leaves_colon_form():
    assert normalize_node_id("10:20") == "10:20"
    assert normalize_node_id(" 7-8 ") == "7:8"


def test_needs_deep_text_only_for_lookups():
    assert needs_deep_text(COMPONENT_LOOKUP, "When to use the select component?")
    assert not needs_deep_text(COMPONENT_LOOKUP, "select component")
    assert not needs_deep_text(GENERAL, "usage guidelines")


def test_extract_copy_candidate_prefers_quotes():
    assert extract_copy_candidate('Review this copy: "Your card was declined"') == "Your card was declined"


def test_extract_copy_candidate_after_colon():
    assert extract_copy_candidate("Check this copy: Your session has expired") == "Your session has expired"


def test_extract_copy_candidate_strips_request_prefixes():
    message = "Can you check if this copy is correct Your payment could not be processed"
    assert extract_copy_candidate(message) == "Your payment could not be processed"


def test_extract_copy_candidate_falls_back_to_message():
    assert extract_copy_candidate("rewrite: ok") == "rewrite: ok"
