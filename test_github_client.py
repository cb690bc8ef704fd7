#!/usr/bin/env python3
"""
Tests for the GitHub issue comment client and step summary output.
"""

import os
import shutil
import tempfile
import unittest
from unittest.mock import Mock, patch

import requests

from dns_zone_pipeline.core.errors import CommentAPIError
from dns_zone_pipeline.core.notifier import Notifier
from dns_zone_pipeline.providers.github import GitHubCommentClient, write_step_summary


def response(status_code=200, payload=None, links=None):
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = payload if payload is not None else []
    resp.links = links or {}
    resp.text = "error body"
    return resp


def comment_json(comment_id, body, login="github-actions[bot]", user_type="Bot"):
    return {"id": comment_id, "body": body, "user": {"login": login, "type": user_type}}


class TestGitHubCommentClient(unittest.TestCase):
    """Test the REST calls made by the comment client."""

    def setUp(self):
        self.session = Mock()
        self.session.headers = {}
        self.client = GitHubCommentClient(
            token="gh-token", repository="acme/dns", session=self.session
        )

    def test_auth_headers(self):
        self.assertEqual(self.session.headers["Authorization"], "Bearer gh-token")
        self.assertEqual(self.session.headers["Accept"], "application/vnd.github+json")

    def test_list_comments_follows_pagination(self):
        next_url = "https://api.github.com/repositories/1/issues/7/comments?page=2"
        self.session.request.side_effect = [
            response(payload=[comment_json(1, "first")], links={"next": {"url": next_url}}),
            response(payload=[comment_json(2, "second", "alice", "User")]),
        ]

        comments = self.client.list_comments(7)

        self.assertEqual([c.id for c in comments], [1, 2])
        self.assertEqual(comments[1].author_type, "User")
        first_call, second_call = self.session.request.call_args_list
        self.assertEqual(
            first_call.args, ("GET", "https://api.github.com/repos/acme/dns/issues/7/comments")
        )
        self.assertEqual(first_call.kwargs["params"], {"per_page": 100})
        self.assertEqual(second_call.args, ("GET", next_url))
        self.assertIsNone(second_call.kwargs["params"])

    def test_create_and_update(self):
        self.session.request.side_effect = [
            response(201, comment_json(10, "created")),
            response(200, comment_json(10, "updated")),
        ]

        created = self.client.create_comment(7, "created")
        updated = self.client.update_comment(10, "updated")

        self.assertEqual(created.id, 10)
        self.assertEqual(updated.body, "updated")
        post, patch_call = self.session.request.call_args_list
        self.assertEqual(post.args[0], "POST")
        self.assertEqual(post.kwargs["json"], {"body": "created"})
        self.assertEqual(
            patch_call.args,
            ("PATCH", "https://api.github.com/repos/acme/dns/issues/comments/10"),
        )

    def test_error_status_raises(self):
        self.session.request.return_value = response(403)
        with self.assertRaises(CommentAPIError) as ctx:
            self.client.create_comment(7, "body")
        self.assertEqual(ctx.exception.status_code, 403)

    def test_connection_error_raises_comment_error(self):
        self.session.request.side_effect = requests.ConnectionError("Connection refused")
        with self.assertRaises(CommentAPIError) as ctx:
            self.client.list_comments(7)
        self.assertIsNone(ctx.exception.status_code)
        self.assertIn("Connection refused", str(ctx.exception))

    def test_timeout_raises_comment_error(self):
        self.session.request.side_effect = requests.Timeout("read timed out")
        with self.assertRaises(CommentAPIError):
            self.client.create_comment(7, "body")

    def test_notifier_updates_existing_bot_comment(self):
        """Test the notifier against REST responses."""
        self.session.request.side_effect = [
            response(payload=[
                comment_json(1, "Terraform Plan Results (quoted)", "alice", "User"),
                comment_json(2, "## Terraform Plan Results 🚀\nold"),
            ]),
            response(200, comment_json(2, "## Terraform Plan Results 🚀\nnew")),
        ]

        Notifier(self.client).upsert(7, "plan", "## Terraform Plan Results 🚀\nnew")

        method, url = self.session.request.call_args.args
        self.assertEqual(method, "PATCH")
        self.assertTrue(url.endswith("/issues/comments/2"))


class TestStepSummary(unittest.TestCase):
    """Test the append-only deployment summary output."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_summary_is_appended(self):
        path = os.path.join(self.temp_dir, "summary.md")
        write_step_summary("first\n", path)
        write_step_summary("second\n", path)

        with open(path) as f:
            self.assertEqual(f.read(), "first\nsecond\n")

    def test_github_step_summary_variable(self):
        path = os.path.join(self.temp_dir, "step_summary.md")
        with patch.dict(os.environ, {"GITHUB_STEP_SUMMARY": path}):
            self.assertEqual(str(write_step_summary("## Terraform Apply Results")), path)
        self.assertTrue(os.path.exists(path))

    def test_no_destination(self):
        with patch.dict(os.environ, {}, clear=True):
            self.assertIsNone(write_step_summary("## Terraform Apply Results"))


if __name__ == "__main__":
    unittest.main()
