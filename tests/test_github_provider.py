"""
Unit tests for the GitHub provider
"""

import pytest
from unittest.mock import Mock, patch
from pr_pulse.errors import AuthError, ProviderAPIError, TransientFetchError
from pr_pulse.providers.github import (
    DEFAULT_BASE_URL, OWN_PRS_QUERY, REVIEW_REQUESTED_QUERY, GitHubProvider,
)


def search_hit(issue_id=101, number=5, merged_at=None):
    return {
        'id': issue_id,
        'number': number,
        'title': 'Fix the widget',
        'html_url': f'https://github.com/octo/widgets/pull/{number}',
        'repository_url': 'https://api.github.com/repos/octo/widgets',
        'user': {'login': 'octocat', 'avatar_url': 'https://avatars/octocat'},
        'state': 'open',
        'pull_request': {'merged_at': merged_at},
        'created_at': '2024-05-01T10:00:00Z',
        'updated_at': '2024-05-03T10:00:00Z',
    }


@pytest.fixture
def provider():
    provider = GitHubProvider('ghp_' + 'a' * 36)
    provider.api_client = Mock()
    return provider


class TestConstruction:
    """Test cases for provider setup."""

    def test_default_base_url(self):
        provider = GitHubProvider('token')
        assert provider.base_url == DEFAULT_BASE_URL
        assert provider.api_client.session.headers['Authorization'] == 'Bearer token'

    def test_enterprise_base_url(self):
        provider = GitHubProvider('token', base_url='https://ghe.example.com/api/v3/')
        assert provider.base_url == 'https://ghe.example.com/api/v3'
        assert provider.api_client.base_url == 'https://ghe.example.com/api/v3'

    def test_close_releases_session(self):
        provider = GitHubProvider('token')
        provider.api_client = Mock()
        provider.close()
        provider.api_client.close.assert_called_once_with()

    def test_identity(self):
        assert GitHubProvider.name == 'github'
        assert GitHubProvider.display_name == 'GitHub'


class TestGetUser:
    """Test cases for authentication and the current user."""

    def test_get_user(self, provider):
        provider.api_client.get_json.return_value = {
            'login': 'octocat', 'name': 'The Octocat', 'avatar_url': 'https://avatars/octocat',
        }
        user = provider.authenticate()

        assert user.login == 'octocat'
        assert user.display_name == 'The Octocat'
        provider.api_client.get_json.assert_called_once_with('/user')

    def test_missing_name_falls_back_to_login(self, provider):
        provider.api_client.get_json.return_value = {'login': 'octocat', 'name': None}
        assert provider.get_user().display_name == 'octocat'

    def test_forbidden_user_is_auth_error(self, provider):
        provider.api_client.get_json.side_effect = ProviderAPIError('forbidden', 403)
        with pytest.raises(AuthError):
            provider.authenticate()

    def test_rate_limited_user_lookup_is_transient(self):
        """Test that an exhausted rate limit on /user is not a rejected token."""
        provider = GitHubProvider('token')
        response = Mock(status_code=403, headers={'X-RateLimit-Remaining': '0'}, reason='Forbidden')
        response.json.return_value = {'message': 'API rate limit exceeded'}
        provider.api_client.session = Mock()
        provider.api_client.session.get.return_value = response

        with pytest.raises(TransientFetchError) as exc_info:
            provider.authenticate()
        assert not isinstance(exc_info.value, AuthError)
        assert exc_info.value.status_code == 403

    def test_other_api_errors_pass_through(self, provider):
        provider.api_client.get_json.side_effect = ProviderAPIError('not found', 404)
        with pytest.raises(ProviderAPIError) as exc_info:
            provider.get_user()
        assert not isinstance(exc_info.value, AuthError)


class TestSearch:
    """Test cases for listing PRs through the search API."""

    def test_transform_search_hit(self, provider):
        pr = provider._transform_pull_request(search_hit())

        assert pr.id == 'github-101'
        assert pr.provider == 'github'
        assert pr.number == 5
        assert pr.repo_full_name == 'octo/widgets'
        assert pr.author.login == 'octocat'
        assert pr.author.avatar_url == 'https://avatars/octocat'
        assert pr.state == 'open'
        assert pr.checks.overall == 'unknown'
        assert pr.reviews.overall == 'pending'

    def test_merged_hit(self, provider):
        pr = provider._transform_pull_request(search_hit(merged_at='2024-05-04T00:00:00Z'))
        assert pr.state == 'merged'

    def test_search_params(self, provider):
        provider.api_client.get_json.return_value = {'items': [search_hit()]}

        items = provider._search(OWN_PRS_QUERY)

        assert len(items) == 1
        provider.api_client.get_json.assert_called_once_with('/search/issues', {
            'q': 'author:@me type:pr state:open',
            'sort': 'updated',
            'order': 'desc',
            'per_page': 100,
        })

    def test_missing_items_is_empty(self, provider):
        provider.api_client.get_json.return_value = {}
        assert provider._search(REVIEW_REQUESTED_QUERY) == []

    @patch('pr_pulse.providers.github.enrich_pull_requests')
    def test_review_requested_list_is_enriched(self, mock_enrich, provider):
        """Test that search hits are handed to the enrichment pipeline."""
        provider.api_client.get_json.return_value = {'items': [search_hit(1, 1), search_hit(2, 2)]}
        mock_enrich.side_effect = lambda adapter, prs: [Mock(pull_request=pr) for pr in prs]

        prs = provider.list_review_requested_pull_requests()

        assert [pr.number for pr in prs] == [1, 2]
        assert provider.api_client.get_json.call_args[0][1]['q'] == REVIEW_REQUESTED_QUERY
        assert mock_enrich.call_args[0][0] is provider


class TestPullRequestDetail:
    """Test cases for the detail sub-fetch."""

    def test_detail_fields(self, provider):
        provider.api_client.get_json.return_value = {
            'head': {'ref': 'feature/PROJ-7-login', 'sha': 'abc123'},
            'additions': 120,
            'deletions': 30,
            'changed_files': 4,
            'requested_reviewers': [{'login': 'alice'}, {'login': 'bob'}],
        }
        detail = provider.get_pull_request_detail('octo/widgets', 5)

        assert detail.branch_name == 'feature/PROJ-7-login'
        assert detail.head_sha == 'abc123'
        assert (detail.changes.additions, detail.changes.deletions, detail.changes.files_changed) == (120, 30, 4)
        assert detail.requested_reviewer_logins == ('alice', 'bob')
        provider.api_client.get_json.assert_called_once_with('/repos/octo/widgets/pulls/5')

    def test_detail_with_missing_fields(self, provider):
        provider.api_client.get_json.return_value = {}
        detail = provider.get_pull_request_detail('octo/widgets', 5)
        assert detail.branch_name == ''
        assert detail.changes.additions == 0
        assert detail.requested_reviewer_logins == ()


class TestCheckStatus:
    """Test cases for the check-run sub-fetch."""

    def test_check_runs_for_head_commit(self, provider):
        provider.api_client.get_json.side_effect = [
            {'head': {'sha': 'abc123'}},
            {'check_runs': [
                {'name': 'build', 'status': 'completed', 'conclusion': 'success'},
                {'name': 'lint', 'status': 'completed', 'conclusion': 'failure'},
            ]},
        ]
        status = provider.get_check_status('octo/widgets', 5)

        assert status.overall == 'failure'
        assert [r.name for r in status.runs] == ['build', 'lint']
        second_call = provider.api_client.get_json.call_args_list[1]
        assert second_call[0] == ('/repos/octo/widgets/commits/abc123/check-runs', {'per_page': 100})

    def test_known_head_sha_skips_pull_request_lookup(self, provider):
        """Test that a SHA from the detail saves the extra PR request."""
        provider.api_client.get_json.return_value = {'check_runs': [
            {'name': 'build', 'status': 'completed', 'conclusion': 'success'},
        ]}
        status = provider.get_check_status('octo/widgets', 5, head_sha='abc123')

        assert status.overall == 'success'
        provider.api_client.get_json.assert_called_once_with(
            '/repos/octo/widgets/commits/abc123/check-runs', {'per_page': 100}
        )

    def test_missing_sha_is_unknown(self, provider):
        provider.api_client.get_json.return_value = {'head': {}}
        status = provider.get_check_status('octo/widgets', 5)
        assert status.overall == 'unknown'
        assert provider.api_client.get_json.call_count == 1

    def test_no_check_runs_is_unknown(self, provider):
        provider.api_client.get_json.side_effect = [{'head': {'sha': 'abc'}}, {'check_runs': []}]
        assert provider.get_check_status('octo/widgets', 5).overall == 'unknown'


class TestReviewStatus:
    """Test cases for the review sub-fetch."""

    def test_reviews_reduced_with_requested_reviewers(self, provider):
        provider.api_client.get_paginated.return_value = [
            {'user': {'login': 'alice', 'avatar_url': 'a.png'}, 'state': 'CHANGES_REQUESTED'},
            {'user': {'login': 'carol', 'avatar_url': 'c.png'}, 'state': 'APPROVED'},
            {'user': {'login': 'dave'}, 'state': 'COMMENTED'},
        ]
        status = provider.get_review_status('octo/widgets', 5, ('alice',))

        assert status.overall == 'pending'
        assert [r.login for r in status.reviewers] == ['carol']
        assert status.pending_reviewers == ('alice',)
        provider.api_client.get_paginated.assert_called_once_with('/repos/octo/widgets/pulls/5/reviews')

    def test_all_approved(self, provider):
        provider.api_client.get_paginated.return_value = [
            {'user': {'login': 'alice'}, 'state': 'APPROVED'},
        ]
        assert provider.get_review_status('octo/widgets', 5).overall == 'approved'
