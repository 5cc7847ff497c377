"""
Backport a GitHub PR onto another branch and open a PR for it.

Usage:
    prbackport -u <username> -p <password> -n <pr-number> -r <repo> \\
        -d <destination-branch> -b <new-branch-name> -g <committer-name> -e <committer-email>

The script will:
1. Fetch the PR title, body, author and commits from <upstream>/<repo>
2. Clone <upstream>/<repo> at the destination branch into the work dir
3. Cherry-pick the PR commits onto a new branch and push it to your fork
4. Open a PR from <username>:<new-branch-name> into the destination branch
"""

import argparse
import functools
import os
import sys

from github import GithubException

from prbackport import git, process
from prbackport.github_api import (
    authenticate,
    create_pull_request,
    get_pull_request,
    get_pull_request_commits,
)

DEFAULT_UPSTREAM = "xen-org"

# (dest, flag) pairs that must be given on the command line
_REQUIRED = [
    ("username", "-u"),
    ("number", "-n"),
    ("repo", "-r"),
    ("dest_branch", "-d"),
    ("branch", "-b"),
    ("committer_name", "-g"),
    ("committer_email", "-e"),
]


def backport_pull_request(
    username: str,
    password: str | None,
    issue_number: int,
    dest_branch: str,
    repo: str,
    branch_name: str,
    committer_name: str,
    committer_email: str,
    *,
    token: str | None = None,
    upstream: str = DEFAULT_UPSTREAM,
    work_dir: str = git.DEFAULT_WORK_DIR,
    log_path: str = process.DEFAULT_LOG_PATH,
    connect=authenticate,
    run=None,
) -> bool:
    """
    Backport PR `issue_number` of upstream/repo onto `dest_branch`.

    Returns True once the new PR is opened, False if the git steps failed
    (in which case no PR is created). API errors propagate as GithubException.
    """
    if run is None:
        run = functools.partial(process.run, log_path=log_path)

    gh = connect(username, password, token)

    pr = get_pull_request(gh, upstream, repo, issue_number)
    print(f"pullrequest {pr.title} user {pr.author}", file=sys.stderr)
    shas = get_pull_request_commits(gh, upstream, repo, issue_number)
    print(f"Found {len(shas)} commit(s) in PR #{issue_number}", file=sys.stderr)

    result = git.prepare_git_repo(
        dest_branch=dest_branch,
        user=pr.author,
        repo=repo,
        shas=shas,
        branch_name=branch_name,
        caller=username,
        user_name=committer_name,
        user_email=committer_email,
        upstream=upstream,
        work_dir=work_dir,
        run=run,
    )
    if not result.ok:
        print(f"Error: backport branch {result.branch} was not pushed: {result.reason}", file=sys.stderr)
        print(f"See {log_path} for the command output.", file=sys.stderr)
        return False

    new_pr = create_pull_request(
        gh,
        title=pr.title,
        description=pr.body,
        owner=upstream,
        branch_name=branch_name,
        dest_branch=dest_branch,
        repo=repo,
        caller=username,
    )
    print(f"Created pull request #{new_pr.number}: {new_pr.html_url}", file=sys.stderr)
    return True


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Backport a GitHub PR onto another branch and open a PR for it.",
        epilog="Example: prbackport -u bob -p secret -n 42 -r foo -d master -b backport-42 "
        "-g 'Bob Smith' -e bob@example.com",
    )
    parser.add_argument("-u", "--username", help="GitHub username (owner of the fork to push to)")
    parser.add_argument("-p", "--password", help="GitHub password")
    parser.add_argument("-n", "--number", type=int, help="Number of the PR to backport")
    parser.add_argument("-r", "--repo", help="Repository name (e.g. xen-api)")
    parser.add_argument("-d", "--dest-branch", dest="dest_branch", help="Branch to backport onto")
    parser.add_argument("-b", "--branch", help="Name of the new backport branch")
    parser.add_argument("-g", "--committer-name", dest="committer_name", help="Git committer name")
    parser.add_argument("-e", "--committer-email", dest="committer_email", help="Git committer email")
    parser.add_argument(
        "--token",
        default=os.environ.get("GITHUB_TOKEN"),
        help="GitHub token, used instead of -p (default: GITHUB_TOKEN env var)",
    )
    parser.add_argument(
        "--upstream",
        default=os.environ.get("PRBACKPORT_UPSTREAM", DEFAULT_UPSTREAM),
        help=f"Owner of the upstream repository (default: {DEFAULT_UPSTREAM})",
    )
    parser.add_argument(
        "--work-dir",
        dest="work_dir",
        default=os.environ.get("PRBACKPORT_WORK_DIR", git.DEFAULT_WORK_DIR),
        help=f"Directory to clone into (default: {git.DEFAULT_WORK_DIR})",
    )
    parser.add_argument(
        "--log-file",
        dest="log_file",
        default=os.environ.get("PRBACKPORT_LOG_FILE", process.DEFAULT_LOG_PATH),
        help=f"File that command output is appended to (default: {process.DEFAULT_LOG_PATH})",
    )
    args, extra = parser.parse_known_args(argv)
    for arg in extra:
        print(f"Warning: ignoring unexpected argument {arg}", file=sys.stderr)

    missing = [flag for dest, flag in _REQUIRED if getattr(args, dest) is None]
    if args.password is None and not args.token:
        missing.insert(1, "-p")
    if missing:
        print(f"Missing required arguments: {' '.join(missing)}", file=sys.stderr)
        parser.print_usage(sys.stdout)
        sys.exit(1)

    print("OK.")
    try:
        ok = backport_pull_request(
            args.username,
            args.password,
            args.number,
            args.dest_branch,
            args.repo,
            args.branch,
            args.committer_name,
            args.committer_email,
            token=args.token,
            upstream=args.upstream,
            work_dir=args.work_dir,
            log_path=args.log_file,
        )
    except GithubException as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
