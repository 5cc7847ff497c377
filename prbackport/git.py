"""
Prepare a backport branch: clone, add fork remotes, cherry-pick and push.
"""

import os
import shlex
import sys
from collections.abc import Callable
from dataclasses import dataclass

from prbackport import process
from prbackport.process import CommandFailed

GIT_HOST = "github.com"
DEFAULT_WORK_DIR = "/tmp"


@dataclass(frozen=True)
class Command:
    path: str
    cmd: str


@dataclass(frozen=True)
class BackportResult:
    ok: bool
    branch: str
    reason: str | None = None


def remote_url(owner: str, repo: str) -> str:
    """Return the SSH remote URL for owner/repo."""
    return f"git@{GIT_HOST}:{owner}/{repo}.git"


def git(path: str, *args: str) -> Command:
    return Command(path, shlex.join(["git", *args]))


def backport_commands(
    *,
    dest_branch: str,
    user: str,
    repo: str,
    shas: list[str],
    branch_name: str,
    caller: str,
    user_name: str,
    user_email: str,
    upstream: str,
    work_dir: str = DEFAULT_WORK_DIR,
) -> list[Command]:
    """
    Build the git commands that put the PR commits of `user` on a new branch
    of `upstream`/`repo` and push it to the fork of `caller`.

    Cherry-picks follow the order of `shas`.
    """
    repo_path = os.path.join(work_dir, repo)
    cmds = [git(work_dir, "clone", "-b", dest_branch, remote_url(upstream, repo), repo_path)]
    # The caller needs its own remote to push to unless it also authored the PR
    if caller != user:
        cmds.append(git(repo_path, "remote", "add", caller, remote_url(caller, repo)))
    cmds += [
        git(repo_path, "config", "user.name", user_name),
        git(repo_path, "config", "user.email", user_email),
        git(repo_path, "remote", "add", user, remote_url(user, repo)),
        git(repo_path, "fetch", user),
        git(repo_path, "checkout", "-b", branch_name),
    ]
    cmds += [git(repo_path, "cherry-pick", sha) for sha in shas]
    cmds.append(git(repo_path, "push", caller, branch_name))
    return cmds


def prepare_git_repo(
    *,
    dest_branch: str,
    user: str,
    repo: str,
    shas: list[str],
    branch_name: str,
    caller: str,
    user_name: str,
    user_email: str,
    upstream: str,
    work_dir: str = DEFAULT_WORK_DIR,
    run: Callable[[str, str], None] = process.run,
) -> BackportResult:
    """Run the backport commands; report the first failing step instead of raising."""
    cmds = backport_commands(
        dest_branch=dest_branch,
        user=user,
        repo=repo,
        shas=shas,
        branch_name=branch_name,
        caller=caller,
        user_name=user_name,
        user_email=user_email,
        upstream=upstream,
        work_dir=work_dir,
    )
    try:
        process.run_commands(cmds, run=run)
    except CommandFailed as e:
        print(e, file=sys.stderr)
        return BackportResult(ok=False, branch=branch_name, reason=str(e))
    return BackportResult(ok=True, branch=branch_name)
