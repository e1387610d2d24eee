#!/usr/bin/env python3
"""Give every repository of a GitHub organisation the standard issue labels.

For each repository the missing labels are created and issues are enabled.

Usage:
    github-labels seattlerb
    github-labels seattlerb --dry-run -v
"""

import argparse
import asyncio
import sys
from typing import Dict, List, Optional, Sequence

from .github import GitHub, Label
from .rest_service import RestServiceError

STANDARD_LABELS = [
    Label(name="status - accepted", color="02d7e1"),
    Label(name="status - feedback", color="02d7e1"),
    Label(name="status - rejected", color="02d7e1"),
    Label(name="type - bug", color="e10c02"),
    Label(name="type - feature", color="02e10c"),
]


async def sync_labels(
    github: GitHub,
    org: str,
    labels: Sequence[Label] = STANDARD_LABELS,
    dry_run: bool = False,
) -> Dict[str, List[str]]:
    """Create missing ``labels`` and enable issues in every repository of ``org``.

    Returns:
        Mapping of repository name to the label names created (or that would
        be created, with ``dry_run``)
    """
    logger = github.logger
    created: Dict[str, List[str]] = {}

    repos = sorted(await github.org_repos(org), key=lambda repo: repo.name)
    logger.info(f"Found {len(repos)} repositories", org=org)

    for repo in repos:
        logger.info(f"Updating {org}/{repo.name}")

        existing = {label.name for label in await github.labels(org, repo.name)}
        missing = [label for label in labels if label.name not in existing]
        created[repo.name] = [label.name for label in missing]

        for label in missing:
            if dry_run:
                logger.info(f"Would create label {label.name!r}", repo=repo.name)
                continue
            await github.label_new(org, repo.name, label.name, label.color)
            logger.debug(f"Created label {label.name!r}", repo=repo.name)

        if repo.has_issues:
            logger.debug("Issues already enabled", repo=repo.name)
        elif dry_run:
            logger.info("Would enable issues", repo=repo.name)
        else:
            await github.repo_update(org, repo.name, {"has_issues": True})
            logger.debug("Enabled issues", repo=repo.name)

    return created


async def run(args: argparse.Namespace) -> int:
    github = GitHub(username=args.user, password=args.password)
    if args.verbose:
        github.logger.set_level("DEBUG")

    try:
        async with github:
            await sync_labels(github, args.org, dry_run=args.dry_run)
    except RestServiceError as e:
        github.logger.error(f"Failed to update {args.org}: {e}")
        return 1

    return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Add the standard issue labels to every repository of an organisation"
    )
    parser.add_argument("org", help="GitHub organisation to update")
    parser.add_argument("--user", help="GitHub user (default: git config github.user)")
    parser.add_argument(
        "--password", help="GitHub password or token (default: git config github.password)"
    )
    parser.add_argument(
        "--dry-run",
        "-n",
        action="store_true",
        help="Report the changes without making them",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log every request",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        return asyncio.run(run(args))
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
