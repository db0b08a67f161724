from __future__ import annotations

import logging

import pytest

from toolgate.exec_core.planning.synthesizer import (
    flatten_query,
    normalize_params,
    synthesize_capability_id,
    synthesize_query,
)
from toolgate.exec_core.schemas.specs import QuerySort, QuerySpec


def test_synthesize_capability_id_follows_naming_convention() -> None:
    assert synthesize_capability_id("github", "issues") == "github_issues_list"
    assert synthesize_capability_id("slack", "channels") == "slack_channels_list"


def test_flatten_query_maps_filters_sort_limit_and_group_by() -> None:
    query = QuerySpec(
        filters={"state": "open"},
        sort=QuerySort(field="created", direction="desc"),
        limit=50,
        group_by=["assignee"],
    )

    assert flatten_query(query) == {
        "state": "open",
        "sort": "created",
        "direction": "desc",
        "limit": 50,
        "group_by": ["assignee"],
    }


def test_flatten_query_explicit_params_win() -> None:
    query = QuerySpec(filters={"state": "open"}, limit=10)
    assert flatten_query(query, {"state": "closed"}) == {"state": "closed", "limit": 10}


def test_flatten_query_without_query() -> None:
    assert flatten_query(None, {"a": 1}) == {"a": 1}
    assert flatten_query(None) == {}


@pytest.mark.parametrize("key", ["repo", "full_name", "owner_repo"])
def test_commits_repo_is_split_into_owner_and_repo(key: str) -> None:
    out = normalize_params("github_commits_list", {key: "octocat/hello-world", "author": "me"})
    assert out == {"owner": "octocat", "repo": "hello-world", "author": "me"}


def test_commits_bare_repo_keeps_explicit_owner() -> None:
    out = normalize_params("github_commits_list", {"owner": "octocat", "repo": "hello-world"})
    assert out == {"owner": "octocat", "repo": "hello-world"}


def test_commits_without_repo_is_left_for_execution() -> None:
    out = normalize_params("github_commits_list", {"author": "me"})
    assert out == {"author": "me"}


def test_normalize_does_not_mutate_input() -> None:
    params = {"repo": "octocat/hello-world"}
    normalize_params("github_commits_list", params)
    assert params == {"repo": "octocat/hello-world"}


def test_invalid_issue_state_is_kept_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="toolgate.exec_core.planning.synthesizer"):
        out = normalize_params("github_issues_list", {"state": "archived"})

    assert out == {"state": "archived"}
    assert "unsupported state 'archived'" in caplog.text


def test_other_capabilities_pass_through() -> None:
    assert normalize_params("slack_messages_list", {"channel": "C1"}) == {"channel": "C1"}


def test_synthesize_query_flags_synthesized_ids() -> None:
    plan = synthesize_query(view_id="v1", integration_id="github", resource="issues", params={"state": "open"})

    assert plan.capability_id == "github_issues_list"
    assert plan.capability_synthesized is True
    assert plan.params == {"state": "open"}
    assert plan.view_id == "v1"


def test_synthesize_query_keeps_explicit_capability() -> None:
    plan = synthesize_query(
        view_id="v1",
        integration_id="github",
        resource="commits",
        params={"repo": "octocat/hello-world"},
        capability_id="github_commits_list",
    )

    assert plan.capability_synthesized is False
    assert plan.params == {"owner": "octocat", "repo": "hello-world"}
