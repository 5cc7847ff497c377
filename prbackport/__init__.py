"""Backport GitHub PRs onto another branch and open a PR for them."""

from prbackport.main import backport_pull_request, main

__all__ = ["main", "backport_pull_request"]
