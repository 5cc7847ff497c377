"""
GitHub API calls used by the backport: read a PR and its commits, open a new PR.
"""

from dataclasses import dataclass

from github import Auth, Github
from github.PullRequest import PullRequest


@dataclass(frozen=True)
class PullRequestInfo:
    number: int
    title: str
    body: str
    author: str


@dataclass(frozen=True)
class PullRequestSubmission:
    title: str
    body: str
    base: str
    head: str


def authenticate(username: str, password: str | None = None, token: str | None = None) -> Github:
    """
    Return a GitHub client for the given credentials.

    A token takes precedence over username/password. One authenticated call is
    made so that bad credentials fail here rather than halfway through.
    """
    auth = Auth.Token(token) if token else Auth.Login(username, password)
    gh = Github(auth=auth)
    gh.get_user().login  # triggers the request
    return gh


def get_pull_request(gh: Github, owner: str, repo: str, number: int) -> PullRequestInfo:
    """Fetch title, body and author of PR `number` through the issues endpoint."""
    issue = gh.get_repo(f"{owner}/{repo}").get_issue(number)
    return PullRequestInfo(
        number=number,
        title=issue.title,
        body=issue.body or "",
        author=issue.user.login,
    )


def get_pull_request_commits(gh: Github, owner: str, repo: str, number: int) -> list[str]:
    """Return the commit SHAs of PR `number` in the order the API lists them."""
    pr = gh.get_repo(f"{owner}/{repo}").get_pull(number)
    return [commit.sha for commit in pr.get_commits()]


def create_pull_request(
    gh: Github,
    *,
    title: str,
    description: str,
    owner: str,
    branch_name: str,
    dest_branch: str,
    repo: str,
    caller: str,
) -> PullRequest:
    """Open a PR on owner/repo from caller:branch_name into dest_branch."""
    submission = PullRequestSubmission(
        title=title,
        body=description,
        base=dest_branch,
        head=f"{caller}:{branch_name}",
    )
    return gh.get_repo(f"{owner}/{repo}").create_pull(
        base=submission.base,
        head=submission.head,
        title=submission.title,
        body=submission.body,
    )
