from kol_agent.agent.sanitizer import sanitize_tool_args

VALID_ID = "123e4567-e89b-12d3-a456-426614174000"


def test_non_dict_arguments_become_empty():
    assert sanitize_tool_args("analyze_posts", None) == {}
    assert sanitize_tool_args("analyze_posts", "kol_1") == {}


def test_input_is_not_mutated():
    raw = {"filters": {"kol_id": "kol_1", "platform": "instagram"}}
    cleaned = sanitize_tool_args("analyze_posts", raw)
    assert cleaned == {"filters": {"platform": "instagram"}}
    assert raw == {"filters": {"kol_id": "kol_1", "platform": "instagram"}}


def test_invented_kol_ids_are_dropped():
    for bad in ["kol_1", "fashion-influencer", "", "   ", 42, None]:
        cleaned = sanitize_tool_args("analyze_posts", {"filters": {"kol_id": bad}})
        assert "kol_id" not in cleaned["filters"], bad


def test_valid_kol_id_is_kept_and_stripped():
    cleaned = sanitize_tool_args("analyze_posts", {"filters": {"kol_id": f" {VALID_ID} "}})
    assert cleaned["filters"]["kol_id"] == VALID_ID


def test_kol_ids_keeps_only_uuids():
    cleaned = sanitize_tool_args(
        "aggregate_metrics", {"scope": "kol", "filters": {"kol_ids": ["kol_1", VALID_ID, 7]}}
    )
    assert cleaned["filters"]["kol_ids"] == [VALID_ID]


def test_kol_ids_dropped_when_nothing_valid():
    for bad in [["kol_1", "kol_2"], [], "kol_1", None]:
        cleaned = sanitize_tool_args("aggregate_metrics", {"scope": "kol", "filters": {"kol_ids": bad}})
        assert "kol_ids" not in cleaned["filters"], bad
        assert cleaned["scope"] == "kol"


def test_blank_filter_members_are_pruned():
    cleaned = sanitize_tool_args(
        "analyze_posts",
        {"filters": {"platform": "", "date_range": {"start": "2024-01-01T00:00:00Z", "end": None}}, "limit": 5},
    )
    assert cleaned == {"filters": {"date_range": {"start": "2024-01-01T00:00:00Z"}}, "limit": 5}


def test_blank_criteria_members_are_pruned():
    cleaned = sanitize_tool_args(
        "recommend_kols", {"kol_criteria": {"niches": None, "follower_range": {"min": 1000, "max": None}}}
    )
    assert cleaned == {"kol_criteria": {"follower_range": {"min": 1000}}}


def test_null_filter_object_is_removed():
    assert sanitize_tool_args("aggregate_metrics", {"scope": "overall", "filters": None}) == {"scope": "overall"}


def test_other_tools_keep_their_arguments():
    args = {"query_text": "summer fashion", "limit": 3, "similarity_threshold": 0.5}
    assert sanitize_tool_args("semantic_search", args) == args
