from design_assistant.catalogs.base import SOURCE_STORY, SOURCE_VISUAL, Entity
from design_assistant.ranking import MAX_CANDIDATES, merge_sources, rank, rank_groups
from design_assistant.utils import tokenize_query


def entity(entity_id, name, group, subgroup="", url=None, source=SOURCE_VISUAL):
    return Entity(
        id=entity_id,
        name=name,
        group=group,
        subgroup=subgroup or name,
        canonical_url=url or f"https://www.figma.com/file/K?node-id={entity_id}",
        source=source,
    )


CATALOG = [
    entity("1", "Select", "Forms", "Inputs"),
    entity("2", "Select (Native)", "Forms", "Inputs"),
    entity("3", "Multi Select", "Forms", "Inputs"),
    entity("4", "Button", "Actions"),
    entity("5", "Button with Icon", "Actions"),
    entity("6", "Modal", "Overlays"),
]


def test_select_scenario_prefers_base_component():
    result = rank("select", CATALOG)
    assert result.best.entity.name == "Select"
    scores = {candidate.entity.name: candidate.score for candidate in result.candidates}
    assert scores["Multi Select"] < scores["Select"]


def test_candidates_are_sorted_by_non_increasing_score():
    for query in ["select", "button", "icon", "forms", "modal", "zzz"]:
        scores = [candidate.score for candidate in rank(query, CATALOG).candidates]
        assert scores == sorted(scores, reverse=True)
        assert all(score > 0 for score in scores)


def test_group_stage_narrows_pool():
    result = rank("actions button", CATALOG)
    assert result.groups == ["Actions"]
    assert {candidate.entity.group for candidate in result.candidates} == {"Actions"}


def test_falls_back_to_unscoped_pool_when_no_group_scores():
    result = rank("button", CATALOG)
    assert result.groups == []
    assert result.best is not None
    assert result.best.entity.name == "Button"


def test_rank_groups_keeps_first_seen_order_on_ties():
    tokens = tokenize_query("inputs")
    assert rank_groups(tokens, ["Inputs A", "Inputs B", "Other", "Inputs A"]) == ["Inputs A", "Inputs B"]


def test_rank_groups_caps_at_three():
    tokens = tokenize_query("kit")
    groups = ["Kit 1", "Kit 2", "Kit 3", "Kit 4"]
    assert rank_groups(tokens, groups) == ["Kit 1", "Kit 2", "Kit 3"]


def test_empty_query_or_catalog_returns_empty_result():
    assert rank("", CATALOG).candidates == []
    assert rank("select", []).best is None


def test_no_match_has_no_best():
    result = rank("zzz", CATALOG)
    assert result.best is None
    assert result.candidates == []


def test_candidate_cap():
    many = [entity(str(i), f"Icon {i}", "Icons") for i in range(MAX_CANDIDATES + 20)]
    assert len(rank("icon", many).candidates) == MAX_CANDIDATES
    assert len(rank("icon", many, max_candidates=5).candidates) == 5


def test_boost_is_added_per_entity():
    def boost(tokens, candidate):
        return 1000 if candidate.id == "2" else 0

    result = rank("select", CATALOG, boost=boost)
    assert result.best.entity.id == "2"


def test_ties_keep_catalog_order():
    twins = [entity("a", "Card", "Layout"), entity("b", "Card", "Layout")]
    assert [c.entity.id for c in rank("card", twins).candidates] == ["a", "b"]


def test_result_to_dict_shape():
    payload = rank("select", CATALOG).to_dict()
    assert payload["best"]["name"] == "Select"
    assert payload["best"]["page"] == "Forms"
    assert "score" in payload["candidates"][0]


def test_merge_sources_dedupes_and_keeps_priority():
    shared = "https://example.com/button"
    visual = [entity("v1", "Button", "A", url=shared), entity("v2", "Link", "A")]
    story = [entity("s1", "Button", "B", url=shared, source=SOURCE_STORY), entity("s2", "Modal", "B", source=SOURCE_STORY)]
    merged = merge_sources([visual, story], limit=10)
    assert [item.id for item in merged] == ["v1", "v2", "s2"]
    assert len({item.canonical_url for item in merged}) == len(merged)


def test_merge_sources_respects_limit_and_custom_key():
    merged = merge_sources([[1, 2, 2, 3], [3, 4, 5]], limit=3, key=lambda item: item)
    assert merged == [1, 2, 3]
    assert merge_sources([[1]], limit=0, key=lambda item: item) == []
