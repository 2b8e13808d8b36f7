"""Tests for PR ordering."""
from __future__ import annotations

import pytest

from ghprs.errors import NetworkError
from ghprs.sorting import sort_pull_requests, sort_pull_requests_with_context

from .conftest import files_payload, make_pull_request

MIGRATION = "⚠️[migration] schema change"


def numbers(prs):
    return [pr.number for pr in prs]


class TestSortPullRequests:
    def test_oldest(self):
        prs = [
            make_pull_request(number=1, created_at="2023-01-03"),
            make_pull_request(number=2, created_at="2023-01-01"),
            make_pull_request(number=3, created_at="2023-01-02"),
        ]
        result = sort_pull_requests(prs, "oldest")
        assert [pr.created_at for pr in result] == ["2023-01-01", "2023-01-02", "2023-01-03"]

    def test_updated_descending(self):
        prs = [
            make_pull_request(number=1, updated_at="2023-02-01"),
            make_pull_request(number=2, updated_at="2023-03-01"),
            make_pull_request(number=3, updated_at="2023-01-01"),
        ]
        assert numbers(sort_pull_requests(prs, "updated")) == [2, 1, 3]

    def test_number_ascending(self):
        prs = [make_pull_request(number=n) for n in (5, 2, 9)]
        assert numbers(sort_pull_requests(prs, "number")) == [2, 5, 9]

    @pytest.mark.parametrize("key", ["newest", "", "bogus"])
    def test_keeps_api_order(self, key):
        prs = [make_pull_request(number=n) for n in (3, 1, 2)]
        result = sort_pull_requests(prs, key)
        assert numbers(result) == [3, 1, 2]
        assert result is not prs

    def test_priority_puts_migrations_first(self):
        prs = [
            make_pull_request(number=1, created_at="2023-01-03"),
            make_pull_request(number=2, created_at="2023-01-01", body=MIGRATION),
            make_pull_request(number=3, created_at="2023-01-02"),
            make_pull_request(number=4, created_at="2023-01-04", body=MIGRATION),
        ]
        assert numbers(sort_pull_requests(prs, "priority")) == [4, 2, 1, 3]

    def test_stable_for_equal_keys(self):
        prs = [make_pull_request(number=n, created_at="2023-01-01") for n in (4, 2, 8)]
        assert numbers(sort_pull_requests(prs, "oldest")) == [4, 2, 8]

    def test_input_not_mutated(self):
        prs = [make_pull_request(number=n) for n in (3, 1)]
        sort_pull_requests(prs, "number")
        assert numbers(prs) == [3, 1]


class TestSortWithContext:
    def test_non_priority_is_untouched(self, fake_client):
        prs = [make_pull_request(number=n) for n in (3, 1)]
        assert numbers(sort_pull_requests_with_context(prs, fake_client, "owner", "repo", "oldest")) == [3, 1]
        assert fake_client.calls == []

    def test_migration_then_tekton_then_date(self, fake_client):
        fake_client.add("repos/owner/repo/pulls/1/files", files_payload("src/app.py"))
        fake_client.add("repos/owner/repo/pulls/2/files", files_payload(".tekton/a-push.yaml"))
        fake_client.add("repos/owner/repo/pulls/3/files", files_payload("src/app.py"))
        fake_client.add("repos/owner/repo/pulls/4/files", files_payload(".tekton/a-pull-request.yaml"))
        prs = [
            make_pull_request(number=1, created_at="2023-01-04"),
            make_pull_request(number=2, created_at="2023-01-01"),
            make_pull_request(number=3, created_at="2023-01-02", body=MIGRATION),
            make_pull_request(number=4, created_at="2023-01-03"),
        ]

        result = sort_pull_requests_with_context(prs, fake_client, "owner", "repo", "priority")

        assert numbers(result) == [3, 4, 2, 1]

    def test_lookup_failure_counts_as_not_tekton(self, fake_client):
        fake_client.add("repos/owner/repo/pulls/1/files", NetworkError("down"))
        fake_client.add("repos/owner/repo/pulls/2/files", files_payload(".tekton/a-push.yaml"))
        prs = [
            make_pull_request(number=1, created_at="2023-01-02"),
            make_pull_request(number=2, created_at="2023-01-01"),
        ]

        result = sort_pull_requests_with_context(prs, fake_client, "owner", "repo", "priority")

        assert numbers(result) == [2, 1]
