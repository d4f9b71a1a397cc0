"""Property-based tests for field-wise merging of webhook events.

Testing Configuration:
- Library: Hypothesis (Python)
"""

import copy

from hypothesis import given, settings, strategies as st

from repomirror.merge import (
    merge_fields,
    merge_issue,
    merge_issue_comment,
    merge_pull_request_comment,
)


field_names = st.sampled_from(["body", "author", "state", "title", "reactions", "locked"])
scalars = st.one_of(st.none(), st.booleans(), st.integers(), st.text(max_size=10))
records = st.dictionaries(field_names, scalars, max_size=6)


@st.composite
def cached_issues(draw: st.DrawFn) -> dict:
    """Issues mapping with a handful of issues and comments."""
    issues = {}
    for number in draw(st.sets(st.integers(min_value=1, max_value=50), max_size=5)):
        comment_ids = draw(st.sets(st.integers(min_value=1, max_value=500), max_size=4))
        issues[number] = {
            "number": number,
            **draw(records),
            "comments": {cid: {"id": cid, **draw(records)} for cid in comment_ids},
        }
    return issues


@settings(max_examples=200, deadline=None)
@given(records, records)
def test_merge_fields_overwrites_present_and_keeps_absent(existing, incoming):
    merged = merge_fields(existing, incoming)

    for key, value in incoming.items():
        assert merged[key] == value
    for key, value in existing.items():
        if key not in incoming:
            assert merged[key] == value
    assert set(merged) == set(existing) | set(incoming)


@settings(max_examples=200, deadline=None)
@given(cached_issues(), st.integers(min_value=1, max_value=60), st.integers(min_value=1, max_value=600), records)
def test_comment_merge_is_idempotent(issues, number, comment_id, fields):
    payload = {
        "action": "created",
        "issue": {"number": number},
        "comment": {"id": comment_id, **fields},
    }

    once = merge_issue_comment(issues, payload)
    twice = merge_issue_comment(once, payload)

    assert once == twice


@settings(max_examples=200, deadline=None)
@given(cached_issues(), st.integers(min_value=1, max_value=60), st.integers(min_value=1, max_value=600), records)
def test_comment_merge_touches_only_its_target(issues, number, comment_id, fields):
    before = copy.deepcopy(issues)
    payload = {
        "action": "created",
        "pull_request": {"number": number},
        "comment": {"id": comment_id, **fields},
    }

    merged = merge_pull_request_comment(issues, payload)

    assert issues == before  # input untouched
    for other, issue in before.items():
        if other != number:
            assert merged[other] == issue
    target = merged[number]["comments"]
    for cid, comment in before.get(number, {}).get("comments", {}).items():
        if cid != comment_id:
            assert target[cid] == comment


@settings(max_examples=200, deadline=None)
@given(cached_issues(), st.integers(min_value=1, max_value=60), records, st.sampled_from(["opened", "closed", "reopened"]))
def test_issue_merge_leaves_comments_untouched(issues, number, fields, action):
    before = copy.deepcopy(issues)
    payload = {"action": action, "issue": {"number": number, "comments": 12, **fields}}

    merged = merge_issue(issues, payload)

    assert merged[number]["comments"] == before.get(number, {}).get("comments", {})
    for key, value in fields.items():
        assert merged[number][key] == value
    for key, value in before.get(number, {}).items():
        if key not in fields and key != "comments":
            assert merged[number][key] == value
