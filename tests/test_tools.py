import pytest

from conftest import VISUAL_FILE_KEY
from design_assistant.errors import UnknownToolError
from design_assistant.tools import FIND_COMPONENT_DETAILS, REVIEW_FRAME, TOOL_DECLARATIONS, DesignSystemTools


@pytest.fixture
def tools(catalogs):
    return DesignSystemTools(catalogs, deep_text_ttl=3600)


def test_declarations_cover_both_tools():
    assert [tool["name"] for tool in TOOL_DECLARATIONS] == [FIND_COMPONENT_DETAILS, REVIEW_FRAME]


def test_dispatch_unknown_tool_raises(tools):
    with pytest.raises(UnknownToolError):
        tools.dispatch("deleteEverything", {})


def test_find_component_details_combines_sources(tools, figma):
    result = tools.dispatch(FIND_COMPONENT_DETAILS, {"query": "button"})
    assert result["name"] == "Button"
    assert result["canonicalUrl"] == "https://www.figma.com/file/VIS123?node-id=2%3A1"
    assert result["page"] == "Actions"
    assert result["docs"]["frameName"] == "Button"
    assert "primary action" in result["docs"]["text"]
    assert result["storybookUrl"].startswith("https://storybook.example.com/react/?path=/docs/")
    assert result["deepText"] == []
    assert figma.node_requests == []
    scores = [candidate["score"] for candidate in result["candidates"]]
    assert scores == sorted(scores, reverse=True)


def test_find_component_details_deep_text_is_cached(tools, figma, clock):
    first = tools.find_component_details({"query": "select", "includeDeepText": True})
    assert first["deepText"] == ["Choose an option", "Helper text goes here"]
    tools.find_component_details({"query": "select", "includeDeepText": True})
    assert figma.node_requests == [(VISUAL_FILE_KEY, "1:1")]
    clock.advance(3601)
    tools.find_component_details({"query": "select", "includeDeepText": True})
    assert len(figma.node_requests) == 2


def test_find_component_details_prefers_story_name_matching_query(tools):
    result = tools.find_component_details({"query": "forms/select"})
    assert result["name"] == "Forms/Select"


def test_find_component_details_missing_query(tools):
    assert tools.find_component_details({"query": "  "}) == {"error": "Missing query"}


def test_find_component_details_survives_outage(settings, cache, catalogs, figma):
    figma.fail = True
    result = DesignSystemTools(catalogs).find_component_details({"query": "button", "includeDeepText": True})
    assert result["canonicalUrl"] is None
    assert result["docs"] is None
    assert result["deepText"] == []
    assert result["storybookUrl"] is not None


def test_review_frame_extracts_text_and_usage(tools, figma):
    result = tools.dispatch(REVIEW_FRAME, {"url": "https://www.figma.com/file/ABC/App?node-id=42-7"})
    assert figma.node_requests == [("ABC", "42:7")]
    assert result["frameName"] == "Checkout"
    assert result["extractedText"] == "Pay now\nShipping address"
    assert result["componentUsageHits"] == [
        {"type": "INSTANCE", "name": "Button"},
        {"type": "INSTANCE", "name": "Select"},
    ]


@pytest.mark.parametrize(
    "url, message",
    [
        ("not a url", "Invalid URL"),
        ("http://localhost:3000/file/ABC?node-id=1-2", "Invalid URL"),
        ("https://www.figma.com/file/ABC/App", "Could not parse design link"),
    ],
)
def test_review_frame_invalid_links_are_errors(tools, url, message):
    assert tools.review_frame({"url": url})["error"].startswith(message)


def test_review_frame_missing_node_and_outage(tools, figma):
    missing = tools.review_frame({"url": "https://www.figma.com/file/ABC/App?node-id=9-9"})
    assert missing["error"] == "Node not found in design file response"
    assert missing["debug"] == {"fileKey": "ABC", "nodeId": "9:9"}
    figma.fail = True
    assert "503" in tools.review_frame({"url": "https://www.figma.com/file/ABC/App?node-id=42-7"})["error"]
